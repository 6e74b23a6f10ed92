from containerwire.cli import main

main()
