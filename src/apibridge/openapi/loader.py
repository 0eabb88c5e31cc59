"""Load an OpenAPI description from a YAML or JSON file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from apibridge.errors import DescriptionError
from apibridge.openapi.models import ApiDescription
from apibridge.openapi.refs import expand_refs

logger = logging.getLogger(__name__)


def load_document(path: Path) -> Any:
    """Read and parse *path* (JSON is a subset of YAML)."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DescriptionError(f"Cannot read {path}: {exc}") from exc

    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise DescriptionError(f"YAML parse error in {path}: {exc}") from exc


def parse_description(document: Any) -> ApiDescription:
    """Expand every ``$ref`` in *document* and build an :class:`ApiDescription`."""
    return ApiDescription.from_document(expand_refs(document))


def load_description(path: Path) -> ApiDescription:
    """Load, expand and parse the description stored at *path*."""
    description = parse_description(load_document(path))
    logger.debug(
        "Loaded %s (%s): %d operations", path, description.title, len(description.operations)
    )
    return description
