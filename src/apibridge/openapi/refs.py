"""Inline internal ``$ref`` pointers into a self-contained description tree.

Only document-local references (``#/components/schemas/Foo``) are supported.
The input tree is never mutated; every expanded node is a fresh copy.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote

from apibridge.errors import CyclicReferenceError, MalformedReferenceError

REF_KEY = "$ref"


def expand_refs(document: Any) -> Any:
    """Return a copy of *document* with every ``$ref`` inlined.

    Keys placed next to a ``$ref`` are kept and override the keys of the
    referenced node.

    Raises:
        CyclicReferenceError: If a reference chain revisits a pointer.
        MalformedReferenceError: If a pointer is not local or does not resolve.
    """
    return _RefExpander(document).expand()


def resolve_pointer(document: Any, pointer: str) -> Any:
    """Resolve a ``#/a/b`` JSON pointer against *document*."""
    if not isinstance(pointer, str) or not pointer.startswith("#"):
        raise MalformedReferenceError(pointer, "only internal '#/...' references are supported")

    fragment = pointer[1:]
    if fragment == "":
        return document
    if not fragment.startswith("/"):
        raise MalformedReferenceError(pointer, "fragment must start with '/'")

    current = document
    for raw_token in fragment[1:].split("/"):
        token = unquote(raw_token).replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict):
            if token not in current:
                raise MalformedReferenceError(pointer, f"no key {token!r}")
            current = current[token]
        elif isinstance(current, list):
            try:
                current = current[int(token)]
            except (ValueError, IndexError) as exc:
                raise MalformedReferenceError(pointer, f"bad list index {token!r}") from exc
        else:
            raise MalformedReferenceError(pointer, f"cannot descend into {type(current).__name__}")
    return current


class _RefExpander:
    def __init__(self, document: Any) -> None:
        self._document = document
        self._resolved: dict[str, Any] = {}

    def expand(self) -> Any:
        return self._walk(self._document, [])

    def _walk(self, node: Any, stack: list[str]) -> Any:
        if isinstance(node, list):
            return [self._walk(item, stack) for item in node]
        if not isinstance(node, dict):
            return node

        if REF_KEY not in node:
            return {key: self._walk(value, stack) for key, value in node.items()}

        pointer = node[REF_KEY]
        if not isinstance(pointer, str):
            raise MalformedReferenceError(pointer, "'$ref' must be a string")

        target = self._follow(pointer, stack)
        siblings = {k: self._walk(v, stack) for k, v in node.items() if k != REF_KEY}
        if not siblings:
            return _copy(target)
        if not isinstance(target, dict):
            raise MalformedReferenceError(pointer, "sibling keys require an object target")
        return {**_copy(target), **siblings}

    def _follow(self, pointer: str, stack: list[str]) -> Any:
        if pointer in stack:
            raise CyclicReferenceError([*stack[stack.index(pointer):], pointer])
        if pointer in self._resolved:
            return self._resolved[pointer]

        target = resolve_pointer(self._document, pointer)
        expanded = self._walk(target, [*stack, pointer])
        self._resolved[pointer] = expanded
        return expanded


def _copy(node: Any) -> Any:
    if isinstance(node, dict):
        return {key: _copy(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_copy(item) for item in node]
    return node
