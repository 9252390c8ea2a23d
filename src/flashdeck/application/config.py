from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from flashdeck.domain.constants import DEFAULT_SESSION_LIMIT


class AppConfig(BaseSettings):
    """
    Configuration model for flashdeck.
    Supports loading from:
    1. Environment variables (FLASHDECK_*)
    2. Config file (~/.config/flashdeck/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHDECK_",
        extra="ignore",
    )

    # Paths
    db_path: Path = Field(default_factory=lambda: Path.home() / ".local/share/flashdeck/flashdeck.db")

    # Sessions
    session_limit: int = Field(default=DEFAULT_SESSION_LIMIT, ge=1)

    # Server
    host: str = "127.0.0.1"
    port: int = 8787

    # 0 = warnings only, 1 = info, 2+ = debug
    verbose: int = Field(default=1, ge=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Resolved at call time so tests can point HOME elsewhere
        toml_files = [
            Path.home() / ".config/flashdeck/config.toml",
            Path.home() / ".flashdeck.toml",
        ]
        toml_file = next((f for f in toml_files if f.exists()), None)

        # Earlier sources win: CLI overrides, then env, then the TOML file.
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("db_path", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/flashdeck/config.toml (if exists)
    3. Environment variables (FLASHDECK_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
