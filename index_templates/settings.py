from __future__ import annotations

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.models import TransportConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INDEX_TEMPLATES_", case_sensitive=False)

    scheme: Literal["http", "https"] = "http"
    host: str = "localhost"
    port: int = 9200
    timeout: float = 10.0
    verify_tls: bool = True
    username: str | None = None
    password: SecretStr | None = None

    def transport(self, **overrides: object) -> TransportConfig:
        """Build a TransportConfig, letting non-None overrides win."""
        values: dict[str, object] = {
            "scheme": self.scheme,
            "host": self.host,
            "port": self.port,
            "timeout": self.timeout,
            "verify_tls": self.verify_tls,
            "username": self.username,
            "password": self.password,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return TransportConfig.model_validate(values)
