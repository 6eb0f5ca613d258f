from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from pagerev.application.scheduling import SchedulePolicy
from pagerev.domain.constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_MODE,
    DEFAULT_TARGET_COUNT,
    ENV_PREFIX,
    REVISION_SCHEDULES,
    STORE_FILE_NAME,
)
from pagerev.domain.errors import UnknownScheduleModeError


def config_file_path() -> Path:
    return Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


class RevisionSettings(BaseSettings):
    """
    Revision scheduling and runtime configuration.
    Supports loading from:
    1. Environment variables (PAGEREV_*)
    2. Config file (~/.config/pagerev/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
    )

    # Scheduling
    mode: str = DEFAULT_MODE
    # 0 means "schedule the whole table".
    target_count: int = DEFAULT_TARGET_COUNT

    # Ingestion
    failure_policy: Literal["abort", "skip"] = "abort"

    # Paths
    store_path: Path = Field(
        default_factory=lambda: Path.home() / CONFIG_DIR_NAME / STORE_FILE_NAME
    )

    verbose: int = 0

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

        # Earlier sources win: CLI overrides, then env, then the TOML file.
        toml_file = config_file_path()
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("target_count", mode="before")
    @classmethod
    def default_target_count(cls, v: Any) -> Any:
        if v is None:
            return 0
        return v

    @field_validator("store_path", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        if v is None:
            return v
        return Path(v).expanduser()


def merge_settings(base: RevisionSettings, overrides: dict[str, Any] | None) -> RevisionSettings:
    """
    Return a copy of `base` with every override that is present and not None applied.

    Unknown keys are ignored. The result is re-validated so a bad override
    fails the same way a bad config file would.
    """
    if not overrides:
        return base

    known = set(RevisionSettings.model_fields)
    applied = {k: v for k, v in overrides.items() if k in known and v is not None}
    if not applied:
        return base

    data = base.model_dump()
    data.update(applied)
    return RevisionSettings.model_validate(data)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> RevisionSettings:
    """
    Multi-layered configuration resolution.
    1. Defaults in RevisionSettings
    2. ~/.config/pagerev/config.toml (if exists)
    3. Environment variables (PAGEREV_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return RevisionSettings(**overrides)


def policy_from_settings(settings: RevisionSettings) -> SchedulePolicy:
    """
    Resolve the named schedule table and revision cap.

    A target count of 0 or less falls back to the table length.
    """
    hours = REVISION_SCHEDULES.get(settings.mode)
    if hours is None:
        raise UnknownScheduleModeError(settings.mode, sorted(REVISION_SCHEDULES))

    target = settings.target_count if settings.target_count > 0 else len(hours)
    return SchedulePolicy(hours=hours, target_count=target)


def default_policy() -> SchedulePolicy:
    return SchedulePolicy(
        hours=REVISION_SCHEDULES[DEFAULT_MODE],
        target_count=DEFAULT_TARGET_COUNT,
    )
