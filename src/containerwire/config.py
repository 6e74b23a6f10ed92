"""Pydantic configuration models for containerwire.

``SafetyLimits`` bounds everything a decoder is willing to accept. It is a
frozen model so one instance can be shared between threads and passed
explicitly into every codec entry point; tests substitute a tightened
instance instead of patching module globals.

Value and codec classes stay plain dataclasses/classes; pydantic is only
used for configuration.
"""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field, model_validator

MIB: Final[int] = 1024 * 1024


class SafetyLimits(BaseModel):
    """Decode-time bounds shared by the binary and text codecs.

    Attributes:
        max_name_length: Largest accepted value name, in UTF-8 bytes.
        max_value_size: Largest accepted payload of a single record, in bytes.
        max_buffer_size: Largest accepted input buffer (bytes) or text
            message (characters).
        max_nesting_depth: Deepest accepted record; the root composite is
            depth 0 and each nesting level adds one. Capped at 256 so a
            deep input fails with a DecodeError before Python's recursion limit.
        min_bytes_read: Minimum a single child decode must consume, so a
            malformed zero-length record cannot stall a decode loop.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_name_length: int = Field(default=1024, gt=0, description="Max name bytes")
    max_value_size: int = Field(default=64 * MIB, gt=0, description="Max payload bytes")
    max_buffer_size: int = Field(default=128 * MIB, gt=0, description="Max input size")
    max_nesting_depth: int = Field(default=64, gt=0, le=256, description="Max nesting depth")
    min_bytes_read: int = Field(default=1, ge=1, description="Min progress per record")

    @model_validator(mode="after")
    def check_value_fits_buffer(self) -> SafetyLimits:
        """A single payload can never be larger than the whole input."""
        if self.max_value_size > self.max_buffer_size:
            raise ValueError(
                f"max_value_size ({self.max_value_size}) cannot exceed "
                f"max_buffer_size ({self.max_buffer_size})"
            )
        return self


DEFAULT_LIMITS: Final[SafetyLimits] = SafetyLimits()
