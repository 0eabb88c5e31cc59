"""Shared fixtures: a small API description and a recording HTTP transport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest


def search_document() -> dict[str, Any]:
    """A trimmed search API description using ``$ref`` like real ones do."""
    return {
        "openapi": "3.0.2",
        "info": {"title": "Search API"},
        "servers": [
            {
                "url": "https://{appId}.algolia.net",
                "variables": {"appId": {"default": "ALGOLIA"}},
            }
        ],
        "paths": {
            "/1/indexes/{indexName}/settings": {
                "parameters": [{"$ref": "#/components/parameters/IndexName"}],
                "get": {
                    "operationId": "getSettings",
                    "summary": "Retrieve index settings.",
                    "parameters": [
                        {
                            "name": "getVersion",
                            "in": "query",
                            "schema": {"type": "integer", "default": 1},
                        }
                    ],
                },
                "put": {
                    "operationId": "setSettings",
                    "description": "Update index settings.",
                    "requestBody": {
                        "required": True,
                        "description": "Index settings to change.",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/IndexSettings"}
                            }
                        },
                    },
                },
            },
            "/1/indexes": {
                "get": {
                    "operationId": "listIndices",
                    "summary": "List indices.",
                    "parameters": [
                        {"name": "page", "in": "query", "schema": {"type": "integer"}},
                        {"name": "X-Trace", "in": "header", "schema": {"type": "string"}},
                    ],
                }
            },
        },
        "components": {
            "parameters": {
                "IndexName": {
                    "name": "indexName",
                    "in": "path",
                    "required": True,
                    "description": "Name of the index.",
                    "schema": {"type": "string"},
                }
            },
            "schemas": {
                "IndexSettings": {
                    "type": "object",
                    "properties": {
                        "attributesForFaceting": {
                            "type": "array",
                            "items": {"type": "string"},
                        },
                        "hitsPerPage": {"type": "integer", "minimum": 1, "maximum": 1000},
                    },
                }
            },
        },
    }


def usage_document() -> dict[str, Any]:
    return {
        "info": {"title": "Usage API"},
        "servers": [{"url": "https://usage.algolia.com"}],
        "paths": {
            "/2/metrics/daily": {
                "get": {
                    "operationId": "retrieveMetricsDaily",
                    "parameters": [
                        {
                            "name": "name",
                            "in": "query",
                            "required": True,
                            "schema": {"type": "array", "items": {"type": "string"}},
                        }
                    ],
                }
            }
        },
    }


def ingestion_document() -> dict[str, Any]:
    return {
        "info": {"title": "Ingestion API"},
        "servers": [
            {
                "url": "https://data.{region}.algolia.com",
                "variables": {"region": {"enum": ["us", "eu"], "default": "us"}},
            }
        ],
        "paths": {
            "/1/tasks": {"get": {"operationId": "listTasks", "summary": "List tasks."}},
        },
    }


class RecordingTransport(httpx.AsyncBaseTransport):
    """Records requests and answers each with a canned JSON response."""

    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.payload = {"ok": True} if payload is None else payload

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        return httpx.Response(
            self.status_code,
            content=json.dumps(self.payload).encode(),
            headers={"Content-Type": "application/json"},
        )


class FailingTransport(httpx.AsyncBaseTransport):
    def __init__(self) -> None:
        self.calls = 0

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def failing_transport() -> FailingTransport:
    return FailingTransport()


@pytest.fixture
def search_doc() -> dict[str, Any]:
    return search_document()


@pytest.fixture
def usage_doc() -> dict[str, Any]:
    return usage_document()


@pytest.fixture
def ingestion_doc() -> dict[str, Any]:
    return ingestion_document()
