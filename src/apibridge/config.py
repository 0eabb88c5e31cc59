"""Configuration file schema and loader.

The configuration is a YAML mapping validated by :class:`BridgeConfig`::

    descriptions:
      - path: specs/search.yml
      - path: specs/usage.yml
        explode_query_params: [name]
      - path: specs/ingestion.yml
        region_rewrite: true
    allow_tools: all
    credentials:
      - application_id: ${ALGOLIA_APP_ID}
        api_key: ${ALGOLIA_API_KEY}
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from apibridge.errors import ConfigError
from apibridge.gateway.models import Credential, HeaderNames
from apibridge.tools.filter import ToolFilter


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class DescriptionRef(BaseModel):
    """One API description file plus the middlewares its tools need."""

    path: str
    explode_query_params: list[str] = []
    region_rewrite: bool = False


class BridgeConfig(BaseModel):
    """Top-level configuration parsed from YAML."""

    descriptions: list[DescriptionRef] = Field(default_factory=list)
    allow_tools: str | list[str] | None = None
    credentials: list[Credential] = Field(default_factory=list)
    headers: HeaderNames = Field(default_factory=HeaderNames)
    telemetry: TelemetrySettings | None = None

    def tool_filter(self) -> ToolFilter:
        return ToolFilter.parse(self.allow_tools)


class ConfigLoader:
    """Load and validate a configuration file into a :class:`BridgeConfig`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def base_dir(self) -> Path:
        return self._path.parent

    def load(self) -> BridgeConfig:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.

        Raises:
            ConfigError: On read errors, YAML parse errors or validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration YAML must be a mapping")

        try:
            return BridgeConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc
