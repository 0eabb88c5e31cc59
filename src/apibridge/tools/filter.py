"""ToolFilter — decides which operations are exposed as tools.

Pure logic, no I/O.  A filter is either "all" or an explicit set of
operationIds.  Unknown ids are allowed in the set; they simply never match.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

ALL_TOKEN = "all"

# Curated, read-mostly defaults.  Never derived from a description.
DEFAULT_ALLOWED_TOOLS: tuple[str, ...] = (
    # Dashboard
    "getUserInfo",
    "getApplications",
    # Search
    "listIndices",
    "getSettings",
    "searchSingleIndex",
    "searchRules",
    "searchSynonyms",
    "saveObject",
    "batch",
    "multipleBatch",
    "partialUpdateObject",
    "deleteByQuery",
    # Analytics
    "getTopSearches",
    "getTopHits",
    "getNoResultsRate",
    # A/B testing
    "listABTests",
    # Monitoring
    "getClustersStatus",
    "getIncidents",
    # Ingestion
    "listTransformations",
    "listTasks",
    "listDestinations",
    "listSources",
    # Usage
    "retrieveMetricsRegistry",
    "retrieveMetricsDaily",
    "retrieveApplicationMetricsHourly",
    # Collections
    "listCollections",
    "getCollection",
    # Query Suggestions
    "listQuerySuggestionsConfigs",
    "getQuerySuggestionsConfig",
    "createQuerySuggestionsConfig",
    "updateQuerySuggestionsConfig",
    "getQuerySuggestionConfigStatus",
    "getQuerySuggestionLogFile",
    # Index settings
    "setAttributesForFaceting",
    "setCustomRanking",
)


class ToolFilter(BaseModel):
    """Immutable allow-list of operationIds, or the "all" sentinel."""

    model_config = ConfigDict(frozen=True)

    match_all: bool = False
    operation_ids: frozenset[str] = frozenset()

    @classmethod
    def all(cls) -> ToolFilter:
        return cls(match_all=True)

    @classmethod
    def of(cls, operation_ids: Iterable[str]) -> ToolFilter:
        return cls(operation_ids=frozenset(operation_ids))

    @classmethod
    def default(cls) -> ToolFilter:
        return cls.of(DEFAULT_ALLOWED_TOOLS)

    @classmethod
    def parse(cls, value: str | Iterable[str] | None) -> ToolFilter:
        """Build a filter from ``"all"``, ``"a,b"``, a list of ids, or ``None``.

        ``None`` yields :meth:`default`.  The ``all`` token is case-insensitive.
        """
        if value is None:
            return cls.default()
        tokens = value.split(",") if isinstance(value, str) else list(value)
        ids = [token.strip() for token in tokens if token.strip()]
        if len(ids) == 1 and ids[0].lower() == ALL_TOKEN:
            return cls.all()
        return cls.of(ids)

    def is_allowed(self, operation_id: str) -> bool:
        return self.match_all or operation_id in self.operation_ids
