"""Data models for the invocation gateway."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field


class Credential(BaseModel):
    """An (applicationId, apiKey) pair for one tenant."""

    model_config = ConfigDict(frozen=True)

    application_id: str
    api_key: str = Field(repr=False)


class Application(BaseModel):
    """A tenant application as listed by the dashboard session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    data_residency_region: str | None = Field(default=None, alias="dataResidencyRegion")


class HeaderNames(BaseModel):
    """Names of the two headers that carry tenant identity upstream."""

    application_id: str = "X-Algolia-Application-Id"
    api_key: str = "X-Algolia-API-Key"


class CallContext(BaseModel):
    """A fully resolved outgoing request.

    Built fresh for each invocation and replaced (never mutated) by
    middlewares.  ``query`` keeps order and allows repeated keys.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    query: tuple[tuple[str, str], ...] = ()
    headers: dict[str, str] = {}
    body: str | None = None

    @property
    def host(self) -> str:
        return httpx.URL(self.url).host

    def full_url(self) -> str:
        """Return the URL including the encoded query string."""
        return str(httpx.URL(self.url, params=list(self.query)))

    def query_values(self, name: str) -> list[str]:
        return [value for key, value in self.query if key == name]

    def with_header(self, name: str, value: str) -> CallContext:
        return self.model_copy(update={"headers": {**self.headers, name: value}})

    def with_host(self, host: str) -> CallContext:
        return self.model_copy(update={"url": str(httpx.URL(self.url).copy_with(host=host))})

    def with_query(self, query: list[tuple[str, str]]) -> CallContext:
        return self.model_copy(update={"query": tuple(query)})


class CallParams(BaseModel):
    """Resolved call parameters handed to every middleware."""

    model_config = ConfigDict(frozen=True)

    operation_id: str
    application_id: str
    credential: Credential
    arguments: dict[str, Any] = {}


class ToolResult(BaseModel):
    """The textual payload returned to the calling agent.

    ``status_code`` is the upstream HTTP status; a non-success status is
    still a result, not an exception.
    """

    text: str
    status_code: int | None = None

    @property
    def is_success(self) -> bool:
        return self.status_code is None or 200 <= self.status_code < 300
