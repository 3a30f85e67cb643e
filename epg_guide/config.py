import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from epg_guide.utils.timezone import DateFormatError, local_timezone


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    cache_backend: str = "sqlite"
    cache_database_path: str = "./data/guide_cache.db"
    guide_cache_ttl_minutes: int = 120
    match_min_similarity: float = 0.6
    match_country_attr_key: str = "tvg-country"
    guide_fetch_timeout_sec: float = 120.0
    guide_parse_timeout_sec: int = 600  # 0 disables timeout
    guide_local_timezone: str | None = None  # System local zone when unset
    untitled_program_title: str = "Untitled program"

    sqlite_journal_mode: str = "WAL"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cache_backend")
    @classmethod
    def validate_cache_backend(cls, value: str) -> str:
        """Validate durable cache backend."""
        normalized = value.lower()
        allowed = {"sqlite", "memory"}
        if normalized not in allowed:
            raise ValueError(f"cache_backend must be one of {sorted(allowed)}")
        return normalized

    @field_validator("guide_cache_ttl_minutes")
    @classmethod
    def validate_ttl(cls, value: int) -> int:
        """Ensure cache TTL is positive."""
        if value <= 0:
            raise ValueError("guide_cache_ttl_minutes must be > 0")
        return value

    @field_validator("match_min_similarity")
    @classmethod
    def validate_min_similarity(cls, value: float) -> float:
        """Similarity threshold must be a ratio."""
        if not 0 <= value <= 1:
            raise ValueError("match_min_similarity must be within [0, 1]")
        return value

    @field_validator("match_country_attr_key", "untitled_program_title")
    @classmethod
    def validate_not_blank(cls, value: str, info) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return value.strip()

    @field_validator("guide_fetch_timeout_sec")
    @classmethod
    def validate_fetch_timeout(cls, value: float) -> float:
        """Validate HTTP timeout (seconds)."""
        if value <= 0:
            raise ValueError("guide_fetch_timeout_sec must be > 0")
        return value

    @field_validator("guide_parse_timeout_sec")
    @classmethod
    def validate_parse_timeout(cls, value: int) -> int:
        """Validate guide parsing timeout (seconds)."""
        if value < 0:
            raise ValueError("guide_parse_timeout_sec must be >= 0")
        return value

    @field_validator("guide_local_timezone")
    @classmethod
    def validate_local_timezone(cls, value: str | None) -> str | None:
        """Validate IANA timezone name."""
        if not value or not value.strip():
            return None
        try:
            local_timezone(value.strip())
        except DateFormatError as exc:
            raise ValueError(str(exc)) from exc
        return value.strip()

    @field_validator("sqlite_journal_mode")
    @classmethod
    def validate_journal_mode(cls, value: str) -> str:
        """Validate SQLite journal mode."""
        normalized = value.upper()
        allowed = {"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"}
        if normalized not in allowed:
            raise ValueError(f"sqlite_journal_mode must be one of {sorted(allowed)}")
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log_level: {value}")
        return normalized

    @model_validator(mode="after")
    def validate_cache_configuration(self):
        """Validate cross-field configuration."""
        if self.cache_backend == "sqlite" and not self.cache_database_path.strip():
            raise ValueError("cache_database_path is required for the sqlite cache backend")
        if self.cache_backend == "memory":
            logger.warning("Durable guide cache disabled - cached programs are lost on restart")
        return self

    def log_summary(self) -> None:
        """Log the effective configuration."""
        logger.info("Configuration loaded:")
        logger.info("  Cache Backend: %s", self.cache_backend)
        if self.cache_backend == "sqlite":
            logger.info("  Cache Database: %s", self.cache_database_path)
            logger.info("  SQLite Journal Mode: %s", self.sqlite_journal_mode)
        logger.info("  Cache TTL: %s minutes", self.guide_cache_ttl_minutes)
        logger.info("  Match Threshold: %.2f (country attribute: %s)",
                    self.match_min_similarity, self.match_country_attr_key)
        logger.info("  Fetch Timeout: %ss", self.guide_fetch_timeout_sec)
        logger.info(
            "  Parse Timeout: %s",
            f"{self.guide_parse_timeout_sec}s" if self.guide_parse_timeout_sec else "disabled",
        )
        logger.info("  Local Timezone: %s", self.guide_local_timezone or "system")


settings = CustomSettings()


def setup_logging(level: str | None = None) -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
