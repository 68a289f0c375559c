from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from quizbox.domain.cards import LeitnerMergePolicy

CONFIG_FILES = [
    Path("quizbox.toml"),
    Path.home() / ".config/quizbox/config.toml",
]


def default_data_dir() -> Path:
    return Path.home() / ".local/share/quizbox"


class AppConfig(BaseSettings):
    """
    Configuration model for quizbox.
    Supports loading from (highest precedence first):
    1. Manual overrides (CLI)
    2. Environment variables (QUIZBOX_*)
    3. Config file (./quizbox.toml or ~/.config/quizbox/config.toml)
    """

    model_config = SettingsConfigDict(
        env_prefix="QUIZBOX_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=default_data_dir)
    backup_dir: Path | None = None

    # Merge
    merge_on_startup: bool = False
    merge_dir: Path | None = None
    merge_policy: LeitnerMergePolicy = LeitnerMergePolicy.PREFER_HIGHER_LEVEL
    backup_before_merge: bool = True

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Find the first existing file
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        if not v:
            return default_data_dir()
        return Path(v).expanduser()

    @field_validator("backup_dir", "merge_dir", mode="before")
    @classmethod
    def resolve_optional_dir(cls, v: Any) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser()

    @field_validator("merge_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper().replace("-", "_")
        return v


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ./quizbox.toml or ~/.config/quizbox/config.toml (first that exists)
    3. Environment variables (QUIZBOX_*)
    4. cli_overrides (passed from Typer)

    None values in *cli_overrides* are ignored so unset CLI options never
    shadow lower layers.
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.backup_dir is None:
        config.backup_dir = config.data_dir / "backups"

    return config
