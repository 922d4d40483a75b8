"""
This module manages configuration for the smee relay.
It resolves the event source URL and reads tunable settings from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_SOURCE = "SMEE_SOURCE"
ENV_BASE_URL = "SMEE_BASE_URL"
ENV_TIMEOUT_S = "SMEE_TIMEOUT_S"
ENV_STRICT = "SMEE_STRICT"
ENV_HTTP_DEBUG = "SMEE_HTTP_DEBUG"

DEFAULT_BASE_URL = "https://smee.io"

SourceOrigin = Literal["argument", "environment", "created"]
PositiveFloat = Annotated[float, Field(gt=0)]


class RelaySettings(BaseModel):
    """
    Tunable settings shared by the HTTP client and the SSE decoder.
    Values not provided explicitly fall back to the model defaults.
    """
    model_config = ConfigDict(extra="forbid")
    base_url: str = DEFAULT_BASE_URL
    timeout_s: PositiveFloat = 30.0
    strict: bool = True
    http_debug: bool = False

    @classmethod
    def from_env(cls) -> RelaySettings:
        """
        Build settings from SMEE_* environment variables.

        Returns:
            A validated RelaySettings instance. Unset variables keep their defaults.

        Raises:
            pydantic.ValidationError: If a variable holds a value that cannot be coerced.
        """
        env = {
            "base_url": os.getenv(ENV_BASE_URL),
            "timeout_s": os.getenv(ENV_TIMEOUT_S),
            "strict": os.getenv(ENV_STRICT),
            "http_debug": os.getenv(ENV_HTTP_DEBUG),
        }
        return cls.model_validate({k: v for k, v in env.items() if v})


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """
    Resolved event source URL together with where it came from.
    """

    url: str
    origin: SourceOrigin

    @staticmethod
    def from_env_or_value(url: Optional[str]) -> Optional[SourceConfig]:
        """
        Resolve the source from an explicit value or the SMEE_SOURCE environment variable.

        Args:
            url: Optional source URL provided by the user.

        Returns:
            The resolved SourceConfig, or None when neither the argument nor the
            environment define one (the caller is expected to create a new channel).
        """
        if url:
            return SourceConfig(url=url, origin="argument")

        env_url = os.getenv(ENV_SOURCE)
        if env_url:
            return SourceConfig(url=env_url, origin="environment")
        return None

    def describe(self) -> str:
        if self.origin == "argument":
            return "from command line"
        if self.origin == "environment":
            return f"from {ENV_SOURCE} env var"
        return "newly created"
