"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_CATEGORY_URL = "https://www.accuradio.com/indie-rock/"
DEFAULT_PLAYLIST_URL = "https://www.accuradio.com/playlist/json/"

SUPPORTED_BACKENDS = ("sqlite", "redis")

# Consecutive evaluations without a novel track before a channel is abandoned.
DEFAULT_STALL_THRESHOLD = 100
DEFAULT_MAX_WORKERS = 16


class RipperConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Catalog
    category_url: str = DEFAULT_CATEGORY_URL
    playlist_url: str = DEFAULT_PLAYLIST_URL

    # Metadata store
    backend: str = "sqlite"
    sqlite_path: str = "tracks.sqlite"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    # Ingestion
    stall_threshold: int = DEFAULT_STALL_THRESHOLD

    # Downloads
    downloads_dir: str = "downloads"
    max_workers: int = DEFAULT_MAX_WORKERS

    # Network deadlines, in seconds
    request_timeout: float = 60.0
    connect_timeout: float = 15.0
    read_timeout: float = 90.0

    # Optional JSONL event log directory (empty disables it)
    log_dir: str = ""

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("category_url", "playlist_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensures catalog URLs are absolute http(s) URLs."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got: {v!r}")
        return v

    @field_validator("playlist_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """Channel ids are appended directly to the playlist URL."""
        return v if v.endswith("/") else v + "/"

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Backend must be one of {', '.join(SUPPORTED_BACKENDS)}, got: {v!r}"
            )
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 64:
            raise ValueError("Max workers must be between 1 and 64.")
        return v

    @field_validator("stall_threshold")
    @classmethod
    def validate_stall_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Stall threshold must be at least 1.")
        return v

    @field_validator("request_timeout", "connect_timeout", "read_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "RipperConfig":
        """Validates that the selected backend has what it needs."""
        if self.backend == "sqlite" and not self.sqlite_path:
            raise ValueError("The sqlite backend requires 'sqlite_path'.")
        if self.backend == "redis" and not 0 < self.redis_port < 65536:
            raise ValueError(f"Invalid redis port: {self.redis_port}")
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
