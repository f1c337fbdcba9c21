"""
Client configuration.

``SolidConfig`` describes the Solid server to talk to, the OAuth client this
backend registers as, and the credential store backend. Load it from YAML
or from ``SOLID_*`` environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from solidpod.exceptions import ConfigurationError
from solidpod.storage import CredentialStore, MemoryCredentialStore, RedisCredentialStore, StoreConfig

DEFAULT_SCOPES = ["openid", "webid", "offline_access"]


class SolidConfig(BaseModel):
    """Configuration for one Solid server deployment."""

    server_url: str = Field(..., description="Base URL of the Solid server, e.g. http://solid:3000")
    issuer: Optional[str] = Field(None, description="OIDC issuer; defaults to server_url")
    client_name: str = Field(default="solidpod", description="Name used for dynamic registration")
    redirect_uri: Optional[str] = Field(None, description="Callback URL for the authorization code")
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    timeout_seconds: float = Field(default=30.0, gt=0)
    verify_tls: bool = Field(default=True)
    secret_key: Optional[str] = Field(None, description="Fernet key used to encrypt stored secrets")
    store: StoreConfig = Field(default_factory=StoreConfig)
    log_level: str = Field(default="INFO")
    import_cap: int = Field(default=100, ge=1, description="Max entities imported per resource type")

    @property
    def issuer_url(self) -> str:
        return (self.issuer or self.server_url).rstrip("/")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SolidConfig":
        """Load a SolidConfig from a YAML file."""
        path = Path(path)
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "SolidConfig":
        """Build a SolidConfig from ``SOLID_*`` environment variables.

        ``SOLID_HOST``/``SOLID_PORT``/``SOLID_SECURE`` are accepted as an
        alternative to ``SOLID_SERVER_URL``.
        """
        env = os.environ if environ is None else environ

        server_url = env.get("SOLID_SERVER_URL")
        if not server_url:
            host = env.get("SOLID_HOST", "localhost").split("://")[-1]
            port = env.get("SOLID_PORT", "3000")
            secure = env.get("SOLID_SECURE", "false").lower() in ("1", "true", "yes")
            server_url = f"{'https' if secure else 'http'}://{host}:{port}"

        data: dict = {
            "server_url": server_url,
            "issuer": env.get("SOLID_ISSUER"),
            "client_name": env.get("SOLID_CLIENT_NAME", "solidpod"),
            "redirect_uri": env.get("SOLID_REDIRECT_URI"),
            "secret_key": env.get("SOLID_SECRET_KEY"),
            "log_level": env.get("SOLID_LOG_LEVEL", "INFO").upper(),
            "store": {
                "backend": env.get("SOLID_STORE_BACKEND", "memory"),
                "redis_url": env.get("SOLID_REDIS_URL", "redis://localhost:6379/0"),
                "prefix": env.get("SOLID_STORE_PREFIX", "solidpod:"),
            },
        }
        if env.get("SOLID_TIMEOUT"):
            data["timeout_seconds"] = env["SOLID_TIMEOUT"]
        if env.get("SOLID_VERIFY_TLS"):
            data["verify_tls"] = env["SOLID_VERIFY_TLS"].lower() in ("1", "true", "yes")
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid SOLID_* environment: {e}") from e


def build_store(config: SolidConfig) -> CredentialStore:
    """Instantiate the credential store selected by ``config.store.backend``."""
    backend = config.store.backend.lower()
    if backend == "memory":
        return MemoryCredentialStore(config.store)
    if backend == "redis":
        return RedisCredentialStore(config.store)
    raise ConfigurationError(f"Unknown credential store backend: {config.store.backend}")


def configure_logging(level: str = "INFO") -> None:
    """Basic log format for host applications that do not configure logging."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
