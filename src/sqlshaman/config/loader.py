"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (SQLSHAMAN__SECTION__KEY)
3. YAML config file
4. Built-in defaults (lowest priority)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from sqlshaman.config.models import (
    DatabaseConfig,
    LoggingConfig,
    NamingConfig,
    ShamanConfig,
)
from sqlshaman.core.errors import ConfigError


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Settings class bound to one loaded YAML document (one per call, thread-safe)."""

    class ShamanSettings(BaseSettings):
        """Root config. Env vars: SQLSHAMAN__DATABASE__URL, SQLSHAMAN__LOGGING__LEVEL, etc."""

        model_config = SettingsConfigDict(
            env_prefix="SQLSHAMAN__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        database: DatabaseConfig = DatabaseConfig()
        naming: NamingConfig = NamingConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # First wins: kwargs, env vars, then the YAML document
            return (init_settings, env_settings, InitSettingsSource(settings_cls, yaml_config))

    return ShamanSettings


def load_config(config_path: Path | None = None, **kwargs: Any) -> ShamanConfig:
    """Load config: defaults < YAML file < env vars < kwargs.

    Args:
        config_path: Optional YAML file. A missing file counts as empty.
        **kwargs: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    yaml_config = _load_yaml(config_path) if config_path is not None else {}

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return ShamanConfig.model_validate(settings.model_dump())
