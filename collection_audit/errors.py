"""
Error taxonomy for the collection audit pipeline.

- InvalidInputError: bad caller input (unknown collection, negative counts,
  malformed plan). Raised before any external side effect.
- InvalidRuleError: a quota rule whose bounds cannot be satisfied.
- ExternalCollaboratorFailure: the query engine, renderer or group store
  returned something unexpected. Never retried; propagates to the caller.

An empty category population is not represented here: it is a valid state.
"""

from __future__ import annotations


class AuditError(Exception):
    """Base class for all audit pipeline errors."""


class InvalidInputError(AuditError, ValueError):
    """Raised for caller input that can never produce a valid audit."""


class InvalidRuleError(InvalidInputError):
    """Raised when a quota rule is outside its valid domain."""


class ExternalCollaboratorFailure(AuditError, RuntimeError):
    """
    Raised when an external collaborator fails or returns malformed output.

    Attributes
    ----------
    collaborator : str
        Short name of the failing collaborator (e.g. "detail_fetcher").
    """

    def __init__(self, message: str, collaborator: str = "unknown") -> None:
        super().__init__(message)
        self.collaborator = collaborator


__all__ = [
    "AuditError",
    "InvalidInputError",
    "InvalidRuleError",
    "ExternalCollaboratorFailure",
]
