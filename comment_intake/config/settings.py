"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="comment-intake", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Intake
    intake_api_key: str = Field(
        default="dev-intake-api-key-change-in-production",
        description="Shared secret used to sign comment payloads (HS256)",
    )
    comment_max_length: int = Field(
        default=10000, description="Maximum comment length in characters"
    )

    # Spam classification (Akismet)
    akismet_api_key: str | None = Field(
        default=None, description="Akismet API key (KEEP SECRET!)"
    )
    akismet_blog_url: str = Field(
        default="http://localhost", description="Blog URL registered with Akismet"
    )
    akismet_timeout: float = Field(
        default=5.0, description="HTTP timeout for Akismet requests (seconds)"
    )
    spam_check_timeout: float = Field(
        default=10.0, description="Upper bound for a whole spam check (seconds)"
    )

    # Record sink
    sink_backend: Literal["memory", "cassandra", "firebase"] = Field(
        default="memory", description="Where accepted comments are committed"
    )
    sink_timeout: float = Field(
        default=10.0, description="Upper bound for a single commit (seconds)"
    )

    # Client address
    trusted_proxy_hops: int = Field(
        default=1,
        ge=0,
        description=(
            "Reverse proxies in front of the app that append to X-Forwarded-For. "
            "0 ignores forwarding headers and uses the peer address"
        ),
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="comment_intake", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )

    # Firebase Storage
    firebase_credentials_path: str | None = Field(
        default=None, description="Path to Firebase service account JSON file"
    )
    firebase_storage_bucket: str | None = Field(
        default=None,
        description="Firebase Storage bucket (e.g., project-id.appspot.com)",
    )
    firebase_project_id: str | None = Field(
        default=None, description="Firebase project ID"
    )
    firebase_comments_prefix: str = Field(
        default="comments/new", description="Object prefix for accepted comments"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=False, description="Allow credentials")
    cors_allow_methods: list[str] = Field(
        default=["POST", "OPTIONS"], description="Allowed methods"
    )
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def akismet_configured(self) -> bool:
        """Check if the Akismet spam provider is configured."""
        return bool(self.akismet_api_key and self.akismet_blog_url)

    @property
    def firebase_configured(self) -> bool:
        """Check if Firebase Storage is configured."""
        return bool(self.firebase_credentials_path and self.firebase_storage_bucket)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
