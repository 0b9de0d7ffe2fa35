from __future__ import annotations

from fastmcp.server.server import Transport
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Black Duck
    black_duck_url: str = ""
    black_duck_api_token: str = ""
    black_duck_timeout: int = 30000  # milliseconds
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # MCP Server
    mcp_transport_mode: Transport = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8000
    mcp_http_path: str = "/mcp/"

    @field_validator("black_duck_url")
    @classmethod
    def _normalize_url(cls, v: str) -> str:
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"BLACK_DUCK_URL is not a valid URL: {v}")
        return v.rstrip("/")

    @property
    def timeout_seconds(self) -> float:
        return self.black_duck_timeout / 1000


settings = Settings()
