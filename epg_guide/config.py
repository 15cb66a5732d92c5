import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    log_level: str = "INFO"
    default_timezone: str = "UTC"
    xmltv_path: str = "xmltv.php"
    xmltv_fetch_timeout_sec: float | None = None  # None keeps the httpx default
    xmltv_parse_timeout_sec: int = 120  # XML parsing timeout, 0 disables timeout

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, value: str) -> str:
        """Validate default timezone is a known IANA zone."""
        try:
            ZoneInfo(value)
            return value
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid default timezone '{value}'") from exc

    @field_validator("xmltv_path")
    @classmethod
    def validate_xmltv_path(cls, value: str) -> str:
        """Strip leading slashes so the path joins cleanly onto the base URL."""
        path = value.strip().lstrip("/")
        if not path:
            raise ValueError("xmltv_path must not be empty")
        return path

    @field_validator("xmltv_fetch_timeout_sec")
    @classmethod
    def validate_fetch_timeout(cls, value: float | None) -> float | None:
        """Validate HTTP timeout (seconds)."""
        if value is not None and value <= 0:
            raise ValueError("xmltv_fetch_timeout_sec must be > 0")
        return value

    @field_validator("xmltv_parse_timeout_sec")
    @classmethod
    def validate_parse_timeout(cls, value: int) -> int:
        """Validate XML parsing timeout (seconds)."""
        if value < 0:
            raise ValueError("xmltv_parse_timeout_sec must be >= 0")
        return value

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Log Level: %s", self.log_level)
        logger.info("  Default Timezone: %s", self.default_timezone)
        logger.info("  XMLTV Path: %s", self.xmltv_path)
        logger.info(
            "  Fetch Timeout: %s",
            f"{self.xmltv_fetch_timeout_sec}s" if self.xmltv_fetch_timeout_sec else "httpx default",
        )
        logger.info(
            "  Parse Timeout: %s seconds",
            self.xmltv_parse_timeout_sec or "disabled",
        )


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs full request URLs, which carry provider credentials
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
