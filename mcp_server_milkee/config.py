"""Process configuration for the MILKEE MCP server."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcp_server_milkee.exceptions import ConfigurationError

DEFAULT_API_URL = "https://app.milkee.ch/api/v2"


class MilkeeConfig(BaseModel):
    """Configuration for the MILKEE connection and server mode."""

    model_config = ConfigDict(frozen=True)

    api_token: str = Field(..., min_length=1, description="MILKEE API bearer token")
    company_id: str = Field(..., min_length=1, description="MILKEE company identifier")
    read_only: bool = Field(False, description="Only expose list/get tools")
    api_url: str = Field(DEFAULT_API_URL, description="MILKEE API base URL (with version)")
    timeout: float = Field(120, gt=0, description="Request timeout in seconds")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MilkeeConfig":
        """Build the configuration from MILKEE_* environment variables."""
        env = os.environ if environ is None else environ

        token = env.get("MILKEE_API_TOKEN", "").strip()
        company_id = env.get("MILKEE_COMPANY_ID", "").strip()
        missing = [
            var
            for var, value in (("MILKEE_API_TOKEN", token), ("MILKEE_COMPANY_ID", company_id))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing {' and '.join(missing)}. "
                "MILKEE_API_TOKEN and MILKEE_COMPANY_ID environment variables are required."
            )

        try:
            return cls(
                api_token=token,
                company_id=company_id,
                read_only=env.get("MILKEE_READ_ONLY", "").strip() or False,
                api_url=env.get("MILKEE_API_URL", "").strip() or DEFAULT_API_URL,
                timeout=env.get("MILKEE_TIMEOUT", "").strip() or 120,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid MILKEE configuration: {e}") from e
