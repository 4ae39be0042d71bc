import re
from functools import lru_cache
from pathlib import Path
from tempfile import gettempdir

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"

# Bunny Stream library ids are short numeric strings, access keys are long hashes
LIBRARY_ID_PATTERN = re.compile(r"^\d{5,7}$")
MIN_STORAGE_API_KEY_LENGTH = 32

DEFAULT_FRAME_TIMESTAMPS = [0, 5, 10, 15, 20, 25, 30]
DEFAULT_DENYLIST = ["Explicit Nudity", "Violence", "Graphic Gore"]


class ConfigurationError(Exception):
    """Raised when required runtime configuration is missing or malformed."""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or [message]


def validate_storage_credentials(library_id: str | None, api_key: str | None) -> None:
    """
    Check the Bunny Stream library id / access key pair before any network call.

    Raises:
        ConfigurationError: when either value is missing, or when the values
            look swapped or malformed.
    """
    missing = []
    if not library_id:
        missing.append("BUNNY_STREAM_LIBRARY_ID")
    if not api_key:
        missing.append("BUNNY_STREAM_API_KEY")
    if missing:
        raise ConfigurationError(f"Missing storage credentials: {', '.join(missing)} not set")

    if not LIBRARY_ID_PATTERN.match(library_id):
        looks_swapped = len(library_id) >= MIN_STORAGE_API_KEY_LENGTH and LIBRARY_ID_PATTERN.match(
            api_key
        )
        hint = (
            " The library id and API key appear to be swapped."
            if looks_swapped
            else " You may have swapped the library id and API key values."
        )
        raise ConfigurationError(
            f"Malformed storage library id: expected a 5-7 digit number, "
            f"got a {len(library_id)}-character string ({library_id[:6]}...).{hint}"
        )

    if len(api_key) < MIN_STORAGE_API_KEY_LENGTH:
        raise ConfigurationError(
            f"Malformed storage API key: too short ({len(api_key)} characters), "
            f"expected a hash of at least {MIN_STORAGE_API_KEY_LENGTH} characters."
        )


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Record store (Supabase Postgres)
    SUPABASE_DB_URL: str | None = None

    # Classification service (AWS Rekognition)
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None
    AWS_REGION: str = "ap-southeast-2"

    # Storage service (Bunny Stream)
    BUNNY_STREAM_LIBRARY_ID: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "BUNNY_STREAM_LIBRARY_ID", "EXPO_PUBLIC_BUNNY_STREAM_LIBRARY_ID"
        ),
    )
    BUNNY_STREAM_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BUNNY_STREAM_API_KEY", "EXPO_PUBLIC_BUNNY_STREAM_API_KEY"),
    )
    BUNNY_STREAM_API_BASE_URL: str = "https://video.bunnycdn.com"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # =================================================================
    # MODERATION SETTINGS
    # =================================================================
    MODERATION_MIN_CONFIDENCE: float = 80.0
    MODERATION_FRAME_TIMESTAMPS: list[int] = Field(
        default_factory=lambda: list(DEFAULT_FRAME_TIMESTAMPS)
    )
    MODERATION_DENYLIST: list[str] = Field(default_factory=lambda: list(DEFAULT_DENYLIST))
    MODERATION_SCRATCH_DIR: str = Field(default_factory=gettempdir)

    MODERATION_MAX_ATTEMPTS: int = 3
    MODERATION_RETRY_BASE_DELAY: float = 1.0
    MODERATION_RETRY_FACTOR: float = 2.0
    MODERATION_RETRY_MAX_DELAY: float = 10.0
    MODERATION_RETRY_JITTER: bool = True

    # Ephemeral video expiry
    VIDEO_RETENTION_HOURS: int = 72
    VIDEO_CLEANUP_INTERVAL_SECONDS: int = 3600
    VIDEO_CLEANUP_ENABLED: bool = False

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def validate_for_moderation(self) -> None:
        """
        Fail fast when the moderation pipeline cannot possibly run.

        Collects every problem so one deploy fixes them all.

        Raises:
            ConfigurationError: if any credential is missing or malformed
        """
        problems: list[str] = []

        if not self.AWS_ACCESS_KEY_ID or not self.AWS_SECRET_ACCESS_KEY:
            problems.append(
                "Missing classification credentials: AWS_ACCESS_KEY_ID and "
                "AWS_SECRET_ACCESS_KEY must be set"
            )
        if not self.AWS_REGION:
            problems.append("Missing classification region: AWS_REGION must be set")

        if not self.SUPABASE_DB_URL:
            problems.append("Missing record store credentials: SUPABASE_DB_URL not set")

        try:
            validate_storage_credentials(self.BUNNY_STREAM_LIBRARY_ID, self.BUNNY_STREAM_API_KEY)
        except ConfigurationError as e:
            problems.append(str(e))

        if not self.MODERATION_FRAME_TIMESTAMPS:
            problems.append("MODERATION_FRAME_TIMESTAMPS must contain at least one offset")
        if not 0 <= self.MODERATION_MIN_CONFIDENCE <= 100:
            problems.append("MODERATION_MIN_CONFIDENCE must be between 0 and 100")

        if problems:
            raise ConfigurationError(
                "Invalid moderation configuration: " + "; ".join(problems), problems=problems
            )

    def get_db_pool_config(self) -> dict:
        """Pool sizing, tightened for local development."""
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 4, "timeout": 15.0})

        return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build the process-wide settings object once."""
    return Settings()
