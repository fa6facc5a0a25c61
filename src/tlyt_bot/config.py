"""Layered settings: defaults, then YAML, then ``.env``/environment, then overrides.

Environment variables use the ``TLYT_BOT_`` prefix and ``__`` to reach into
sub-models, e.g. ``TLYT_BOT_FORUM__USERNAME`` or ``TLYT_BOT_CATALOG__API_KEY``.
Credentials are ``SecretStr`` and render masked in reprs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_REGIONS: tuple[str, ...] = ("US", "UK", "CA", "AU", "IN")


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class CatalogSettings(BaseModel):
    """Trending-video catalog (YouTube Data API) configuration."""

    api_key: SecretStr = SecretStr("")
    base_url: str = "https://www.googleapis.com/youtube/v3"
    regions: list[str] = Field(default_factory=lambda: list(DEFAULT_REGIONS))
    max_results: int = Field(default=50, gt=0, le=50)
    pacing_delay: float = Field(
        default=0.2, ge=0.0, description="Seconds to wait between region calls."
    )
    timeout: int = Field(default=30, gt=0, description="Request timeout in seconds.")


class GenerationSettings(BaseModel):
    """Generative analysis provider configuration."""

    model: str = "gemini/gemini-2.0-flash-001"
    api_key: SecretStr | None = None
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8192, gt=0)
    timeout: int = Field(default=120, gt=0, description="Request timeout in seconds.")
    anchor_count: int = Field(default=15, gt=0)
    extra_moments: int = Field(default=5, ge=0)


class ForumSettings(BaseModel):
    """Forum (Reddit) posting configuration."""

    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    username: str = ""
    password: SecretStr = SecretStr("")
    subreddit: str = "tlyt"
    user_agent: str | None = None
    token_margin_seconds: int = Field(
        default=300, ge=0, description="Refresh the token this long before expiry."
    )
    timeout: int = Field(default=30, gt=0, description="Request timeout in seconds.")

    def resolved_user_agent(self) -> str:
        """Return the configured user agent or the operator-identifying default."""
        if self.user_agent:
            return self.user_agent
        return f"web:tlyt-reddit-bot:v1.0.0 (by u/{self.username})"


class PipelineSettings(BaseModel):
    """Processing pipeline configuration."""

    batch_size: int = Field(
        default=1, gt=0, description="Videos analyzed and posted per process run."
    )


class StorageSettings(BaseModel):
    """Repository configuration."""

    path: Path = Path("./data/tlyt.json")


class APISettings(BaseModel):
    """FastAPI server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cron_secret: SecretStr | None = None
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    """Logging / observability configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Main Settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Top-level tlyt-bot settings, one sub-model per collaborator."""

    model_config = SettingsConfigDict(
        env_prefix="TLYT_BOT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="config.yaml",
        yaml_file_encoding="utf-8",
        extra="ignore",
    )

    _config_path_override: ClassVar[Path | None] = None

    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    forum: ForumSettings = Field(default_factory=ForumSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources init > env > .env > YAML; secret files are not read."""
        yaml_file = cls._config_path_override or settings_cls.model_config.get(
            "yaml_file", "config.yaml"
        )
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
        )

    @classmethod
    def load(cls, config_path: Path | None = None, **overrides: Any) -> Settings:
        """Resolve settings, reading YAML from ``config_path`` when given.

        ``overrides`` take precedence over every other source.

        Raises:
            ValidationError: If any setting value fails validation.
        """
        cls._config_path_override = config_path
        try:
            return cls(**overrides)
        finally:
            cls._config_path_override = None


def format_validation_error(exc: ValidationError) -> str:
    """Format a Pydantic ValidationError into a user-friendly message.

    Args:
        exc: The validation error to format.

    Returns:
        A multi-line string with each error on its own line.
    """
    lines: list[str] = []
    for error in exc.errors():
        loc = " -> ".join(str(part) for part in error["loc"])
        msg = error["msg"]
        raw_input = error.get("input")
        if raw_input is not None:
            lines.append(f"  {loc}: {msg} (got {raw_input!r})")
        else:
            lines.append(f"  {loc}: {msg}")
    return "Configuration error:\n" + "\n".join(lines)
