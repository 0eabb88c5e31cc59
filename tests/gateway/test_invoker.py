"""Tests for OperationInvoker — the per-call pipeline."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from apibridge.errors import TransportError, UsageError, ValidationError
from apibridge.gateway.credentials import MultiCredentialResolver, StaticCredentialResolver
from apibridge.gateway.inputs import compile_operation_input
from apibridge.gateway.invoker import OperationInvoker, is_json_text
from apibridge.gateway.middleware import explode_query_param
from apibridge.gateway.models import Credential, HeaderNames
from apibridge.openapi.loader import parse_description
from apibridge.openapi.models import Operation, Server

APP1 = Credential(application_id="APP1", api_key="key-1")


def _invoker(document: dict, operation_id: str, transport, resolver=None, **kwargs):
    description = parse_description(document)
    operation = next(op for op in description.operations if op.operation_id == operation_id)
    resolver = resolver or MultiCredentialResolver([APP1])
    schema = compile_operation_input(
        operation, description.server, require_application_id=resolver.requires_application_id
    )
    return OperationInvoker(
        operation, description.server, schema, resolver, transport=transport, **kwargs
    )


class TestEndToEnd:
    async def test_put_settings(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "setSettings", transport)
        result = await invoker(
            {
                "applicationId": "APP1",
                "indexName": "books",
                "requestBody": {"attributesForFaceting": ["author"]},
            }
        )

        assert result.is_success
        assert json.loads(result.text) == {"ok": True}
        [request] = transport.requests
        assert request.method == "PUT"
        assert request.url.path == "/1/indexes/books/settings"
        assert request.headers["X-Algolia-Application-Id"] == "APP1"
        assert request.headers["X-Algolia-API-Key"] == "key-1"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {"attributesForFaceting": ["author"]}

    async def test_get_with_query(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "listIndices", transport)
        await invoker({"applicationId": "APP1", "page": 2})
        [request] = transport.requests
        assert request.method == "GET"
        assert request.url.params["page"] == "2"
        assert request.content == b""
        assert "Content-Type" not in request.headers

    async def test_custom_header_names(self, search_doc: dict, transport) -> None:
        headers = HeaderNames(application_id="X-App", api_key="X-Key")
        invoker = _invoker(search_doc, "listIndices", transport, headers=headers)
        await invoker({"applicationId": "APP1"})
        assert transport.requests[0].headers["X-App"] == "APP1"
        assert transport.requests[0].headers["X-Key"] == "key-1"


class TestValidation:
    async def test_missing_path_parameter_is_named(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "getSettings", transport)
        with pytest.raises(ValidationError) as info:
            await invoker({"applicationId": "APP1"})
        assert "indexName" in info.value.paths
        assert transport.requests == []

    async def test_missing_application_id(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "getSettings", transport)
        with pytest.raises(ValidationError) as info:
            await invoker({"indexName": "books"})
        assert info.value.paths == ["applicationId"]

    async def test_static_credentials_need_no_application_id(
        self, search_doc: dict, transport
    ) -> None:
        invoker = _invoker(
            search_doc, "getSettings", transport, resolver=StaticCredentialResolver(APP1)
        )
        await invoker({"indexName": "books"})
        assert transport.requests[0].headers["X-Algolia-Application-Id"] == "APP1"

    async def test_wrong_type_in_body(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "setSettings", transport)
        with pytest.raises(ValidationError) as info:
            await invoker(
                {"applicationId": "APP1", "indexName": "books", "requestBody": {"hitsPerPage": "20"}}
            )
        assert info.value.paths == ["requestBody.hitsPerPage"]

    def test_validated_values_unchanged(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "setSettings", transport)
        arguments = {
            "applicationId": "APP1",
            "indexName": "books",
            "requestBody": {"hitsPerPage": 20, "customRanking": ["desc(popularity)"]},
        }
        assert invoker.validate(arguments) == arguments


class TestRequestBody:
    async def test_get_with_body_fails_without_network(self, search_doc: dict, transport) -> None:
        resolver = AsyncMock()
        resolver.requires_application_id = True
        invoker = _invoker(search_doc, "getSettings", transport, resolver=resolver)
        with pytest.raises(UsageError, match="GET"):
            await invoker(
                {"applicationId": "APP1", "indexName": "books", "requestBody": {"a": 1}}
            )
        assert transport.requests == []
        resolver.resolve.assert_not_awaited()

    async def test_get_with_empty_body_is_fine(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "getSettings", transport)
        await invoker({"applicationId": "APP1", "indexName": "books", "requestBody": ""})
        assert transport.requests[0].content == b""

    async def test_json_text_body_passes_through(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "setSettings", transport)
        await invoker(
            {"applicationId": "APP1", "indexName": "books", "requestBody": '{"hitsPerPage":20}'}
        )
        assert transport.requests[0].content == b'{"hitsPerPage":20}'

    async def test_json_text_body_is_validated(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "setSettings", transport)
        with pytest.raises(ValidationError) as info:
            await invoker(
                {"applicationId": "APP1", "indexName": "books", "requestBody": '{"hitsPerPage":0}'}
            )
        assert info.value.paths == ["requestBody.hitsPerPage"]


class TestUrlBuilding:
    async def test_path_values_are_encoded(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "getSettings", transport)
        await invoker({"applicationId": "APP1", "indexName": "my index/2"})
        assert transport.requests[0].url.raw_path == b"/1/indexes/my%20index%2F2/settings"

    async def test_server_variable_default(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "listIndices", transport)
        await invoker({"applicationId": "APP1"})
        assert transport.requests[0].url.host == "algolia.algolia.net"

    async def test_server_variable_argument(self, search_doc: dict, transport) -> None:
        invoker = _invoker(search_doc, "listIndices", transport)
        await invoker({"applicationId": "APP1", "appId": "latency"})
        assert transport.requests[0].url.host == "latency.algolia.net"

    async def test_enum_server_variable(self, ingestion_doc: dict, transport) -> None:
        invoker = _invoker(ingestion_doc, "listTasks", transport)
        with pytest.raises(ValidationError):
            await invoker({"applicationId": "APP1", "region": "mars"})
        await invoker({"applicationId": "APP1", "region": "eu"})
        assert transport.requests[0].url.host == "data.eu.algolia.com"

    async def test_undeclared_server_variable(self, transport) -> None:
        operation = Operation(operation_id="ping", path="/ping", method="get")
        server = Server(url="https://{host}")
        resolver = StaticCredentialResolver(APP1)
        schema = compile_operation_input(operation, server, require_application_id=False)
        invoker = OperationInvoker(operation, server, schema, resolver, transport=transport)
        with pytest.raises(UsageError, match="host"):
            await invoker({})

    async def test_list_query_is_comma_joined(self, usage_doc: dict, transport) -> None:
        invoker = _invoker(usage_doc, "retrieveMetricsDaily", transport)
        await invoker({"applicationId": "APP1", "name": ["records", "operations"]})
        assert transport.requests[0].url.params.get_list("name") == ["records,operations"]

    async def test_exploded_list_query(self, usage_doc: dict, transport) -> None:
        invoker = _invoker(
            usage_doc,
            "retrieveMetricsDaily",
            transport,
            middlewares=[explode_query_param("name")],
        )
        await invoker({"applicationId": "APP1", "name": ["records", "operations"]})
        assert transport.requests[0].url.params.get_list("name") == ["records", "operations"]


class TestResponses:
    async def test_non_success_is_a_result(self, search_doc: dict, transport) -> None:
        transport.status_code = 404
        transport.payload = {"message": "Index does not exist"}
        invoker = _invoker(search_doc, "getSettings", transport)
        result = await invoker({"applicationId": "APP1", "indexName": "nope"})
        assert result.status_code == 404
        assert not result.is_success
        assert json.loads(result.text) == {"message": "Index does not exist"}

    async def test_non_json_response(self, search_doc: dict) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad gateway"))
        invoker = _invoker(search_doc, "listIndices", transport)
        result = await invoker({"applicationId": "APP1"})
        assert result.text == "Bad gateway"
        assert result.status_code == 502

    async def test_transport_failure_is_not_retried(
        self, search_doc: dict, failing_transport
    ) -> None:
        invoker = _invoker(search_doc, "listIndices", failing_transport)
        with pytest.raises(TransportError, match="connection refused"):
            await invoker({"applicationId": "APP1"})
        assert failing_transport.calls == 1


class TestIsJsonText:
    def test_values(self) -> None:
        assert is_json_text('{"a": 1}')
        assert is_json_text("[]")
        assert not is_json_text("{not json")
        assert not is_json_text({"a": 1})
        assert not is_json_text(None)
