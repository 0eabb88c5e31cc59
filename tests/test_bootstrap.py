"""Tests for build_registry."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import yaml

from apibridge.bootstrap import build_registry
from apibridge.config import BridgeConfig
from apibridge.errors import ConfigError, CyclicReferenceError, DuplicateToolError, RegistrationError
from apibridge.gateway.models import Application


@pytest.fixture
def spec_dir(tmp_path: Path, search_doc: dict, usage_doc: dict, ingestion_doc: dict) -> Path:
    specs = tmp_path / "specs"
    specs.mkdir()
    (specs / "search.yml").write_text(yaml.safe_dump(search_doc))
    (specs / "usage.yml").write_text(yaml.safe_dump(usage_doc))
    (specs / "ingestion.yml").write_text(yaml.safe_dump(ingestion_doc))
    return tmp_path


def _config(**overrides) -> BridgeConfig:
    data = {
        "descriptions": [
            {"path": "specs/search.yml"},
            {"path": "specs/usage.yml", "explode_query_params": ["name"]},
        ],
        "allow_tools": "all",
        "credentials": [{"application_id": "APP1", "api_key": "key-1"}],
    }
    data.update(overrides)
    return BridgeConfig.model_validate(data)


class TestBuildRegistry:
    def test_registers_every_description(self, spec_dir: Path) -> None:
        registry = build_registry(_config(), base_dir=spec_dir)
        assert registry.frozen
        assert {t.name for t in registry.list_tools()} == {
            "getSettings",
            "setSettings",
            "listIndices",
            "retrieveMetricsDaily",
        }

    def test_static_credential_inputs(self, spec_dir: Path) -> None:
        registry = build_registry(_config(), base_dir=spec_dir)
        assert "applicationId" not in registry.get("listIndices").input_schema.get("required", [])

    def test_filter_applies(self, spec_dir: Path) -> None:
        registry = build_registry(_config(allow_tools="getSettings"), base_dir=spec_dir)
        assert [t.name for t in registry.list_tools()] == ["getSettings"]

    def test_frozen_after_build(self, spec_dir: Path, search_doc: dict) -> None:
        from apibridge.gateway.credentials import StaticCredentialResolver
        from apibridge.gateway.models import Credential
        from apibridge.openapi.loader import parse_description
        from apibridge.tools.filter import ToolFilter

        registry = build_registry(_config(allow_tools="getSettings"), base_dir=spec_dir)
        with pytest.raises(RegistrationError):
            registry.register_tools(
                parse_description(search_doc),
                ToolFilter.of(["listIndices"]),
                StaticCredentialResolver(Credential(application_id="A", api_key="k")),
            )

    def test_duplicate_descriptions(self, spec_dir: Path) -> None:
        config = _config(descriptions=[{"path": "specs/search.yml"}, {"path": "specs/search.yml"}])
        with pytest.raises(DuplicateToolError):
            build_registry(config, base_dir=spec_dir)

    def test_no_credentials(self, spec_dir: Path) -> None:
        with pytest.raises(ConfigError):
            build_registry(_config(credentials=[]), base_dir=spec_dir)

    def test_cyclic_description_is_fatal(self, tmp_path: Path) -> None:
        (tmp_path / "cyclic.yml").write_text(
            "servers: [{url: 'https://x'}]\ncomponents: {a: {$ref: '#/components/a'}}\n"
        )
        with pytest.raises(CyclicReferenceError):
            build_registry(_config(descriptions=[{"path": "cyclic.yml"}]), base_dir=tmp_path)

    async def test_exploded_query_end_to_end(self, spec_dir: Path, transport) -> None:
        registry = build_registry(_config(), base_dir=spec_dir, transport=transport)
        await registry.execute_tool("retrieveMetricsDaily", {"name": ["records", "operations"]})
        assert transport.requests[0].url.params.get_list("name") == ["records", "operations"]

    def test_region_rewrite_needs_session(
        self, spec_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = _config(descriptions=[{"path": "specs/ingestion.yml", "region_rewrite": True}])
        with caplog.at_level(logging.WARNING, logger="apibridge.bootstrap"):
            registry = build_registry(config, base_dir=spec_dir)
        assert "listTasks" in registry
        assert "region_rewrite ignored" in caplog.text

    async def test_region_rewrite_with_session(self, spec_dir: Path, transport) -> None:
        session = AsyncMock()
        session.get_application_api_key = AsyncMock(return_value="session-key")
        session.list_applications = AsyncMock(
            return_value=[Application(id="APP1", data_residency_region="de")]
        )
        config = _config(descriptions=[{"path": "specs/ingestion.yml", "region_rewrite": True}])
        registry = build_registry(config, session=session, base_dir=spec_dir, transport=transport)

        result = await registry.execute_tool("listTasks", {"applicationId": "APP1", "region": "us"})

        assert json.loads(result.text) == {"ok": True}
        [request] = transport.requests
        assert request.url.host == "data.eu.algolia.com"
        assert request.headers["X-Algolia-API-Key"] == "session-key"


class TestDashboardTools:
    @staticmethod
    def _session() -> AsyncMock:
        session = AsyncMock()
        session.get_application_api_key = AsyncMock(return_value="session-key")
        session.list_applications = AsyncMock(return_value=[Application(id="APP1")])
        session.get_user = AsyncMock(return_value={"email": "dev@example.com"})
        return session

    def test_registered_with_session(self, spec_dir: Path) -> None:
        registry = build_registry(_config(), session=self._session(), base_dir=spec_dir)
        names = [t.name for t in registry.list_tools()]
        assert names[:4] == [
            "getUserInfo",
            "getApplications",
            "setAttributesForFaceting",
            "setCustomRanking",
        ]
        assert "getSettings" in names

    def test_absent_without_session(self, spec_dir: Path) -> None:
        registry = build_registry(_config(), base_dir=spec_dir)
        assert "getUserInfo" not in registry
        assert "setCustomRanking" not in registry

    def test_filter_applies(self, spec_dir: Path) -> None:
        config = _config(allow_tools="getApplications,getSettings")
        registry = build_registry(config, session=self._session(), base_dir=spec_dir)
        assert [t.name for t in registry.list_tools()] == ["getApplications", "getSettings"]

    async def test_faceting_through_registry(self, spec_dir: Path, transport) -> None:
        transport.payload = {"attributesForFaceting": ["brand"]}
        registry = build_registry(
            _config(), session=self._session(), base_dir=spec_dir, transport=transport
        )

        result = await registry.execute_tool(
            "setAttributesForFaceting",
            {"applicationId": "APP1", "indexName": "products", "attributesForFaceting": ["brand"]},
        )

        assert result.text == "The current attributes for faceting are: brand"
        assert [r.headers["X-Algolia-API-Key"] for r in transport.requests] == [
            "session-key",
            "session-key",
        ]
