"""
Centralized configuration for the ICD MCP server.

Values come from environment variables (or a local .env file):
  - WHO_CLIENT_ID / WHO_CLIENT_SECRET: ICD-API OAuth2 client credentials
  - ICD10_RELEASE:        ICD-10 release tag (default 2019)
  - ICD11_RELEASE:        ICD-11 MMS release tag (default 2024-01)
  - WHO_API_LANGUAGE:     Accept-Language for API responses (default en)
  - MCP_PROTOCOL_VERSION: MCP protocol version advertised to clients
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

DEFAULT_ICD10_RELEASE = "2019"
DEFAULT_ICD11_RELEASE = "2024-01"
DEFAULT_LANGUAGE = "en"
DEFAULT_MCP_PROTOCOL_VERSION = "2025-06-18"


@dataclass(frozen=True)
class WHOSettings:
    """WHO ICD-API credentials and release selection."""

    client_id: str = ""
    client_secret: str = ""
    icd10_release: str = DEFAULT_ICD10_RELEASE
    icd11_release: str = DEFAULT_ICD11_RELEASE
    language: str = DEFAULT_LANGUAGE
    mcp_protocol_version: str = DEFAULT_MCP_PROTOCOL_VERSION

    @classmethod
    def from_env(cls) -> "WHOSettings":
        return cls(
            client_id=os.getenv("WHO_CLIENT_ID", ""),
            client_secret=os.getenv("WHO_CLIENT_SECRET", ""),
            icd10_release=os.getenv("ICD10_RELEASE") or DEFAULT_ICD10_RELEASE,
            icd11_release=os.getenv("ICD11_RELEASE") or DEFAULT_ICD11_RELEASE,
            language=os.getenv("WHO_API_LANGUAGE") or DEFAULT_LANGUAGE,
            mcp_protocol_version=os.getenv("MCP_PROTOCOL_VERSION", DEFAULT_MCP_PROTOCOL_VERSION),
        )

    @property
    def is_configured(self) -> bool:
        """True when both OAuth2 credentials are present."""
        return bool(self.client_id and self.client_secret)

    def require_credentials(self) -> None:
        if not self.is_configured:
            raise ConfigurationError("WHO API credentials not configured")
