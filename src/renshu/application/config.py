from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from renshu.domain.constants import (
    ACTIVE_QUEUE_CAPACITY,
    DEFAULT_DESIRED_RETENTION,
    DEFAULT_MAXIMUM_INTERVAL,
)
from renshu.domain.models import PracticeMode


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/renshu/config.toml",
        Path.home() / ".renshu.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for renshu.
    Supports loading from:
    1. Environment variables (RENSHU_*)
    2. Config file (~/.config/renshu/config.toml)
    3. Manual overrides (CLI / API)
    """

    model_config = SettingsConfigDict(
        env_prefix="RENSHU_",
        extra="ignore",
    )

    # Session
    practice_mode: PracticeMode = PracticeMode.READINGS
    active_capacity: int = Field(default=ACTIVE_QUEUE_CAPACITY, ge=1)
    review_ratio: float | None = None
    shuffle: bool = False
    enable_prerequisites: bool = True
    include_reviews: bool = True
    flip_vocabulary: bool = False
    flip_kanji: bool = False

    # Progress storage
    progress_backend: Literal["sqlite", "http"] = "sqlite"
    progress_db: Path = Field(
        default_factory=lambda: Path.home() / ".config/renshu/progress.db"
    )
    progress_url: str | None = None

    # Scheduler
    desired_retention: float = Field(default=DEFAULT_DESIRED_RETENTION, gt=0.0, lt=1.0)
    maximum_interval: int = Field(default=DEFAULT_MAXIMUM_INTERVAL, ge=1)
    enable_fuzzing: bool = True

    # Logging
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/renshu/logs")
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
        from pydantic_settings import TomlConfigSettingsSource

        # First existing config file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("review_ratio")
    @classmethod
    def check_review_ratio(cls, v: float | None) -> float | None:
        if v is not None and not 0.0 <= v <= 1.0:
            raise ValueError("review_ratio must be between 0 and 1")
        return v

    @field_validator("progress_db", "log_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/renshu/config.toml (if exists)
    3. Environment variables (RENSHU_*)
    4. overrides (CLI flags / API request), None values ignored
    """
    cleaned = {k: v for k, v in (overrides or {}).items() if v is not None}
    return AppConfig(**cleaned)
