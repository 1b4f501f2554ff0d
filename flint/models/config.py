"""Configuration models."""

from pydantic import BaseModel, Field


class RecoveryConfig(BaseModel):
    """Rate-limit retry configuration."""

    max_attempts: int = Field(default=3, ge=1, description="Total attempts, including the first call")
    base_delay_ms: int = Field(default=1000, ge=0, description="Base backoff delay in milliseconds")
    max_jitter_ms: int = Field(default=1000, ge=0, description="Upper bound of random jitter in milliseconds")


class PortalConfig(BaseModel):
    """Portal URL endpoint configuration."""

    api_base: str = Field(
        default="http://localhost:5000/api/snaptrade",
        description="Base URL of the account-linking API",
    )
    portal_path: str = Field(default="/portal-url", description="Portal URL endpoint path")
    timeout: int = Field(default=30, description="Request timeout in seconds")
    window_width: int = Field(default=800, description="Portal window width in pixels")
    window_height: int = Field(default=600, description="Portal window height in pixels")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra request headers (e.g. x-csrf-token)"
    )

    @property
    def url(self) -> str:
        return self.api_base.rstrip("/") + "/" + self.portal_path.lstrip("/")


class FlintConfig(BaseModel):
    """Main Flint configuration."""

    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig, description="Retry configuration")
    portal: PortalConfig = Field(default_factory=PortalConfig, description="Portal configuration")
    debug: bool = Field(default=False, description="Enable debug mode")

    @classmethod
    def from_yaml(cls, path: str) -> "FlintConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))

    @classmethod
    def from_env(cls) -> "FlintConfig":
        """Load configuration from environment variables."""
        from dotenv import load_dotenv
        import os

        load_dotenv()

        headers = {}
        csrf_token = os.getenv("FLINT_CSRF_TOKEN")
        if csrf_token:
            headers["x-csrf-token"] = csrf_token

        return cls(
            recovery=RecoveryConfig(
                max_attempts=int(os.getenv("FLINT_MAX_ATTEMPTS", "3")),
                base_delay_ms=int(os.getenv("FLINT_BASE_DELAY_MS", "1000")),
                max_jitter_ms=int(os.getenv("FLINT_MAX_JITTER_MS", "1000")),
            ),
            portal=PortalConfig(
                api_base=os.getenv("FLINT_API_BASE", "http://localhost:5000/api/snaptrade"),
                timeout=int(os.getenv("FLINT_TIMEOUT", "30")),
                headers=headers,
            ),
            debug=os.getenv("FLINT_DEBUG", "false").lower() == "true",
        )
