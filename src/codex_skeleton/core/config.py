import os
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from codex_skeleton.core.errors import ConfigurationError
from codex_skeleton.core.render import DEFAULT_PLACEHOLDER

ENV_PREFIX = "CODEX_SKELETON_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


class CompressionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    placeholder: str = DEFAULT_PLACEHOLDER
    workers: int | None = None
    # Overrides the per-language retain-unclaimed option when set.
    retain_unclaimed: bool | None = None

    @field_validator("placeholder")
    @classmethod
    def _single_line(cls, value: str) -> str:
        if not value or "\n" in value or "\r" in value:
            raise ValueError("placeholder must be a non-empty single line")
        return value

    @field_validator("workers")
    @classmethod
    def _positive(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError("workers must be at least 1")
        return value

    @property
    def worker_count(self) -> int:
        return self.workers or os.cpu_count() or 1

    @classmethod
    def from_env(cls, **overrides: Any) -> "CompressionConfig":
        """Build a config from ``CODEX_SKELETON_*`` variables, then apply explicit overrides."""
        values: dict[str, Any] = {}
        enabled = os.getenv(f"{ENV_PREFIX}ENABLED")
        if enabled is not None:
            values["enabled"] = _parse_bool(f"{ENV_PREFIX}ENABLED", enabled)
        placeholder = os.getenv(f"{ENV_PREFIX}PLACEHOLDER")
        if placeholder is not None:
            values["placeholder"] = placeholder
        workers = os.getenv(f"{ENV_PREFIX}WORKERS")
        if workers is not None:
            values["workers"] = workers
        retain = os.getenv(f"{ENV_PREFIX}RETAIN_UNCLAIMED")
        if retain is not None:
            values["retain_unclaimed"] = _parse_bool(f"{ENV_PREFIX}RETAIN_UNCLAIMED", retain)

        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid compression settings: {exc}") from exc
