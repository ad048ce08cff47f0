"""
Settings for a download run, validated with pydantic.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_OGG_PACKAGER = "oggify-tag-ogg"

_FACTORY_PATTERN = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_]\w*$")


class OggifyConfig(BaseModel):
    """Everything a run needs besides the input lines."""

    # Remote session
    session_factory: str = ""

    # Output
    output_dir: str = "."

    # Pacing and penalty backoff, in seconds
    delay_between_items: float = 10.0
    penalty_step: float = 60.0
    max_penalty_delay: float = 300.0

    # Packaging
    ogg_packager_command: str = DEFAULT_OGG_PACKAGER
    raw_fallback: bool = True

    # Set at load time, never persisted
    config_path: str = Field(".", repr=False)

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    @field_validator("session_factory")
    @classmethod
    def validate_session_factory(cls, v: str) -> str:
        """Ensures the factory is given as 'package.module:callable'."""
        if v and not _FACTORY_PATTERN.match(v):
            raise ValueError(
                "Session factory must look like 'package.module:callable', "
                f"but got: {v}"
            )
        return v

    @field_validator("delay_between_items", "penalty_step", "max_penalty_delay")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Delays cannot be negative.")
        return v

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Output directory cannot be empty.")
        return v

    @field_validator("ogg_packager_command")
    @classmethod
    def validate_packager_command(cls, v: str) -> str:
        if not v:
            raise ValueError("Ogg packager command cannot be empty.")
        return v

    @model_validator(mode="after")
    def validate_penalty_settings(self) -> "OggifyConfig":
        """The ceiling has to allow at least one retry."""
        if self.penalty_step <= 0:
            raise ValueError("Penalty step must be greater than zero.")
        if self.max_penalty_delay < self.penalty_step:
            raise ValueError(
                "max_penalty_delay must be at least as large as penalty_step."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Field names persisted in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
