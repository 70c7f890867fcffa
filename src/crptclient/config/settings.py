"""Client configuration models.

This module defines the immutable configuration structure for the
document client using Pydantic V2 for validation. The rate limit is
expressed as a request limit per fixed window; both must be positive.
"""

import json
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from crptclient.exceptions import ConfigError

DEFAULT_API_URL = "https://ismp.crpt.ru/api/v3/lk/documents/create"

TimeUnit = Literal["milliseconds", "seconds", "minutes", "hours", "days"]

_UNIT_SECONDS: dict[str, float] = {
    "milliseconds": 0.001,
    "seconds": 1.0,
    "minutes": 60.0,
    "hours": 3600.0,
    "days": 86400.0,
}


class Window(BaseModel):
    """Replenishment period of the rate limiter.

    Attributes:
        unit: Time unit of the window.
        magnitude: Number of units in one window.
    """

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    unit: TimeUnit = Field(
        default="seconds",
        description="Time unit of the window",
    )
    magnitude: float = Field(
        default=1.0,
        gt=0.0,
        description="Number of units in one window",
    )

    @property
    def seconds(self) -> float:
        """Window length in seconds."""
        return self.magnitude * _UNIT_SECONDS[self.unit]


class RateLimitConfig(BaseModel):
    """Fixed quota of dispatch starts per window.

    Attributes:
        request_limit: Maximum requests allowed to start within one window.
        window: Replenishment period.
    """

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    request_limit: int = Field(
        ...,
        ge=1,
        description="Maximum number of requests started per window",
    )
    window: Window = Field(
        default_factory=Window,
        description="Replenishment period",
    )


class ClientConfig(BaseModel):
    """Complete configuration of a CrptApi instance.

    Attributes:
        api_url: Registration endpoint receiving the POST requests.
        timeout: HTTP timeout in seconds for the default transport.
        rate_limit: Request limit and window.
    """

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    api_url: str = Field(
        default=DEFAULT_API_URL,
        min_length=1,
        description="Document registration endpoint",
    )
    timeout: float = Field(
        default=10.0,
        gt=0.0,
        description="HTTP timeout in seconds",
    )
    rate_limit: RateLimitConfig = Field(
        ...,
        description="Request limit and replenishment window",
    )

    @classmethod
    def build(
        cls,
        time_unit: TimeUnit | Window,
        request_limit: int,
        **kwargs: Any,
    ) -> "ClientConfig":
        """Validate plain construction parameters into a config.

        Args:
            time_unit: Unit name (one unit per window) or a full Window.
            request_limit: Maximum requests per window.
            **kwargs: Remaining ClientConfig fields.

        Returns:
            Validated configuration.

        Raises:
            ConfigError: If any value is invalid.
        """
        window = time_unit if isinstance(time_unit, Window) else {"unit": time_unit}
        data = {
            "rate_limit": {"request_limit": request_limit, "window": window},
            **kwargs,
        }
        return cls._validate(data)

    @classmethod
    def _validate(cls, data: Any) -> "ClientConfig":
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = e.errors()
            field_path = ".".join(str(p) for p in errors[0]["loc"]) if errors else None
            raise ConfigError(
                f"Configuration validation failed: {e}", field_path=field_path
            ) from e

    @classmethod
    def from_yaml(cls, path: Path) -> "ClientConfig":
        """Read a client configuration file.

        The file mirrors the model layout: ``api_url``, ``timeout`` and a
        ``rate_limit`` block with ``request_limit`` and ``window``.

        Args:
            path: YAML file to read.

        Returns:
            Validated configuration.

        Raises:
            FileNotFoundError: If the file is missing.
            ConfigError: If the YAML is malformed, is not a mapping, or
                holds invalid values.
        """
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax in {path.name}: {e}", cause=e) from e

        if not isinstance(raw, dict):
            raise ConfigError(
                f"Configuration file must contain a mapping, got {type(raw).__name__}"
            )

        return cls._validate(raw)

    def to_yaml(self, path: Path) -> None:
        """Write the configuration in the layout ``from_yaml`` reads.

        Args:
            path: Destination file; overwritten if present.
        """
        document = yaml.safe_dump(
            self.model_dump(mode="json"), sort_keys=False, allow_unicode=True
        )
        path.write_text(document, encoding="utf-8")

    def with_overrides(self, overrides: dict[str, Any]) -> "ClientConfig":
        """Copy of this config with dotted-key overrides applied.

        Example: ``{"rate_limit.request_limit": 5, "timeout": 2.5}``.

        Args:
            overrides: Values keyed by dotted field path.

        Returns:
            New validated configuration; this one is left unchanged.

        Raises:
            ConfigError: If a key names no existing field or a value is
                invalid.
        """
        data = json.loads(self.model_dump_json())

        for dotted_key, value in overrides.items():
            *parents, leaf = dotted_key.split(".")
            section: Any = data
            for name in parents:
                section = section.get(name) if isinstance(section, dict) else None
            if not isinstance(section, dict) or leaf not in section:
                raise ConfigError(
                    f"Invalid override key: {dotted_key}", field_path=dotted_key
                )
            section[leaf] = value

        return self._validate(data)
