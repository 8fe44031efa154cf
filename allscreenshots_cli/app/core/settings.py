from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from allscreenshots_cli.app.core.errors import ConfigError

API_KEY_ENV = "ALLSCREENSHOTS_API_KEY"


def _default_config_path() -> Path:
    override = os.getenv("ALLSCREENSHOTS_CONFIG")
    if override:
        return Path(override).expanduser()
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "allscreenshots" / "config.yaml"


class Settings(BaseModel):
    api_base_url: str = os.getenv("ALLSCREENSHOTS_API_URL", "https://api.allscreenshots.com")
    request_timeout: float = float(os.getenv("ALLSCREENSHOTS_TIMEOUT", "60"))
    config_path: Path = Field(default_factory=_default_config_path)


settings = Settings()


class AuthConfig(BaseModel):
    api_key: Optional[str] = None


class DefaultsConfig(BaseModel):
    device: Optional[str] = "Desktop HD"
    format: Optional[str] = "png"
    output_dir: Optional[str] = "./screenshots"
    display: Optional[bool] = True


class DisplayConfig(BaseModel):
    width: Optional[int] = 80
    height: Optional[int] = 24


class Config(BaseModel):
    """Persisted user configuration (``config.yaml``)."""

    auth: AuthConfig = Field(default_factory=AuthConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        path = path or settings.config_path
        if not path.exists():
            return cls()
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Failed to parse config file {path}: expected a mapping")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc

    def save(self, path: Optional[Path] = None) -> Path:
        path = path or settings.config_path
        payload: Dict[str, Any] = self.model_dump()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Failed to write config file {path}: {exc}") from exc
        return path

    def set_api_key(self, key: str, path: Optional[Path] = None) -> Path:
        self.auth.api_key = key
        return self.save(path)

    def remove_api_key(self, path: Optional[Path] = None) -> Path:
        self.auth.api_key = None
        return self.save(path)


def mask_api_key(key: str) -> str:
    if len(key) <= 12:
        return "*" * len(key)
    return f"{key[:8]}...{key[-4:]}"


def resolve_api_key(
    explicit: Optional[str],
    config: Config,
    environ: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """Pick the API key: explicit flag, then environment, then config file."""
    env = os.environ if environ is None else environ
    return explicit or env.get(API_KEY_ENV) or config.auth.api_key


class RuntimeConfig(BaseModel):
    """Everything a command needs, resolved once per invocation."""

    model_config = {"frozen": True}

    api_key: Optional[str] = None
    base_url: str = settings.api_base_url
    request_timeout: float = settings.request_timeout
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)

    @classmethod
    def resolve(
        cls,
        explicit_api_key: Optional[str],
        config: Config,
        environ: Optional[Dict[str, str]] = None,
    ) -> "RuntimeConfig":
        return cls(
            api_key=resolve_api_key(explicit_api_key, config, environ),
            base_url=settings.api_base_url,
            request_timeout=settings.request_timeout,
            defaults=config.defaults,
            display=config.display,
        )
