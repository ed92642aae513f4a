"""Configuration settings for catcode."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .selection import DEFAULT_RANGE, validate_range


class EncodingConfig(BaseModel):
    """Configuration of an :class:`~catcode.pipeline.EncodingPipeline`.

    Mirrors the options a command-line front end would expose:
    the attribute range (``-R``), the test-distribution flag (``-A``) and the
    choice of encoder.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    attribute_indices: str = Field(
        default=DEFAULT_RANGE,
        description="1-based columns to encode, e.g. 'first-last' or '1-3,5,8-last'",
    )
    use_test_distribution: bool = Field(
        default=False,
        description="Frequency encoder only: refit on every call using the batch being transformed",
    )
    encoder: Literal["mean", "frequency"] = Field(
        default="mean",
        description="Encoding strategy: mean (target mean per category) or frequency",
    )
    log_level: str = Field(default="WARNING", description="Level for setup_logging")

    @field_validator("attribute_indices")
    @classmethod
    def _check_range(cls, v: str) -> str:
        return validate_range(v)

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        level = str(v).upper()
        if not isinstance(getattr(logging, level, None), int):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @model_validator(mode="after")
    def _check_encoder_flags(self) -> "EncodingConfig":
        if self.use_test_distribution and self.encoder != "frequency":
            raise ValueError("use_test_distribution only applies to the frequency encoder")
        return self
