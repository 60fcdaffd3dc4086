"""Pydantic configuration models for pagedistill."""

from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

READABILITY_CDN_URL = "https://cdn.jsdelivr.net/npm/@mozilla/readability@0.5.0/Readability.js"


class ExtractorChoice(str, Enum):
    """Content-extraction strategy run inside the rendered page."""

    READABILITY = "readability"
    DOM_DISTILLER = "domdistiller"

    @classmethod
    def from_flag(cls, use_readability: bool) -> "ExtractorChoice":
        return cls.READABILITY if use_readability else cls.DOM_DISTILLER


def _expand_env_var(value: Optional[str]) -> Optional[str]:
    """Expand environment variable references in a string.

    Supports $VAR and ${VAR} syntax. Returns original value if
    the env var is not set.
    """
    import os
    import re

    if value is None:
        return None

    # Match $VAR or ${VAR}
    pattern = r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)"

    def replace(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replace, value)


class BrowserConfig(BaseModel):
    """Configuration for the browser-rendering provider.

    The API token supports environment variable expansion, e.g.
    ``--api-token '$BROWSER_API_TOKEN'``.
    """

    provider: Literal["remote", "local"] = Field(
        "remote",
        description="Remote managed browser service or a locally launched Chromium",
    )
    endpoint: Optional[str] = Field(None, description="Base URL of the remote browser service")
    ws_endpoint: Optional[str] = Field(
        None,
        description="Devtools websocket base URL (derived from endpoint when unset)",
    )
    api_token: Optional[str] = Field(None, description="Bearer token for the remote browser service")
    headless: bool = Field(True, description="Run the local browser headless")
    max_browsers: int = Field(2, ge=1, description="Concurrent browsers allowed by the local provider")
    navigation_timeout: float = Field(30.0, gt=0, description="Page navigation timeout in seconds")
    request_timeout: float = Field(15.0, gt=0, description="Control-plane HTTP timeout in seconds")

    model_config = {"extra": "forbid"}

    def model_post_init(self, __context: object) -> None:
        """Expand environment variables in the token after init."""
        if self.api_token:
            object.__setattr__(self, "api_token", _expand_env_var(self.api_token))

    def devtools_base(self) -> str:
        """Websocket base URL used to attach to a session."""
        if self.ws_endpoint:
            return self.ws_endpoint.rstrip("/")
        if not self.endpoint:
            raise ValueError("Remote browser provider requires an endpoint")
        base = self.endpoint.rstrip("/")
        if base.startswith("https://"):
            return "wss://" + base[len("https://") :]
        if base.startswith("http://"):
            return "ws://" + base[len("http://") :]
        return base


class ExtractionConfig(BaseModel):
    """Where the in-page extraction libraries are loaded from.

    Each source is either an http(s) URL or a path to a local script file.
    """

    readability_script: Optional[str] = Field(
        READABILITY_CDN_URL,
        description="Mozilla Readability bundle (URL or file path)",
    )
    domdistiller_script: Optional[str] = Field(
        None,
        description="DOM Distiller bundle (URL or file path)",
    )

    model_config = {"extra": "forbid"}


class ServerConfig(BaseModel):
    """Configuration for the HTTP distill service."""

    host: str = Field("127.0.0.1", description="Bind address")
    port: int = Field(8787, ge=1, le=65535, description="Bind port")
    api_key: Optional[str] = Field(
        None,
        description="Bearer key required on requests (unset disables auth)",
    )

    model_config = {"extra": "forbid"}

    def model_post_init(self, __context: object) -> None:
        if self.api_key:
            object.__setattr__(self, "api_key", _expand_env_var(self.api_key))


class DistillConfig(BaseModel):
    """
    Root configuration model for pagedistill.

    Example:
        config = DistillConfig(
            browser=BrowserConfig(endpoint="https://browser.example.com"),
        )

    YAML format:
        browser:
          provider: remote
          endpoint: https://browser.example.com
          api_token: $BROWSER_API_TOKEN
        extraction:
          domdistiller_script: ./vendor/domdistiller.js
        server:
          port: 8787
    """

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "DistillConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "DistillConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
