"""Shared error types for apibridge.

Startup errors (:class:`SpecError`, :class:`RegistrationError`,
:class:`ConfigError`) are fatal to the process.  Invocation errors
(:class:`InvocationError` and subclasses) are isolated to the failing call.
"""

from __future__ import annotations

from pydantic import BaseModel


class BridgeError(Exception):
    """Base error for all apibridge failures."""


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class ConfigError(BridgeError):
    """The configuration file could not be read or validated."""


class SpecError(BridgeError):
    """An API description could not be compiled."""


class MalformedReferenceError(SpecError):
    """A ``$ref`` is not an internal pointer or points to nothing."""

    def __init__(self, pointer: object, detail: str = "") -> None:
        self.pointer = pointer
        self.detail = detail
        msg = f"Malformed reference: {pointer!r}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class CyclicReferenceError(SpecError):
    """Expanding a ``$ref`` leads back to itself."""

    def __init__(self, chain: list[str]) -> None:
        self.chain = list(chain)
        super().__init__("Cyclic reference: " + " -> ".join(self.chain))


class DescriptionError(SpecError):
    """The expanded description does not have the expected structure."""


class RegistrationError(BridgeError):
    """A tool could not be added to the registry."""


class DuplicateToolError(RegistrationError):
    """An operationId is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool already registered: {name}")


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


class ToolNotFoundError(BridgeError):
    """Requested tool does not exist in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class InvocationError(BridgeError):
    """A single tool invocation failed."""


class FieldViolation(BaseModel):
    """One failed constraint, addressed by its dotted field path."""

    path: str
    reason: str


class ValidationError(InvocationError):
    """Caller arguments do not satisfy the tool's input schema."""

    def __init__(self, violations: list[FieldViolation]) -> None:
        self.violations = list(violations)
        lines = [f"{v.path or '<root>'}: {v.reason}" for v in self.violations]
        super().__init__("Invalid arguments:\n  " + "\n  ".join(lines))

    @property
    def paths(self) -> list[str]:
        return [v.path for v in self.violations]


class CredentialError(InvocationError):
    """No usable credential could be resolved for the call."""

    def __init__(self, application_id: str | None, detail: str = "") -> None:
        self.application_id = application_id
        self.detail = detail
        msg = f"No credential for application: {application_id}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class UsageError(InvocationError):
    """The call is structurally invalid regardless of the upstream."""


class TransportError(InvocationError):
    """A network-level failure reaching the upstream or a side service."""

    def __init__(self, url: str, detail: str = "") -> None:
        self.url = url
        self.detail = detail
        msg = f"Transport failure for {url}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
