"""
Typed errors for the weighting engine.

Lower-level components raise these; the orchestrator attaches the phase that
failed and re-raises the same type. ``status_code`` is what the HTTP layer
answers with.
"""

from __future__ import annotations

from typing import Any


class TraitPathError(Exception):
    """Base class for all engine errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        phase: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        """Render as the `{error, details}` response body."""
        details = dict(self.details)
        details["type"] = type(self).__name__
        if self.phase:
            details["phase"] = self.phase
        return {"error": self.message, "details": details}


class ConfigurationError(TraitPathError):
    """Empty or invalid trait/skill catalog. Fatal."""

    status_code = 500


class InputMissingError(TraitPathError):
    """No trait data and no evaluation data yet. Expected while analysis is pending."""

    status_code = 202


class InvalidTraitError(TraitPathError):
    """A trait record that cannot be normalised."""

    status_code = 422


class NotFoundError(TraitPathError):
    """Referenced conversation does not exist for this user."""

    status_code = 404


class ResolutionError(TraitPathError):
    """Prerequisite cycle or dangling prerequisite reference."""

    status_code = 422


class PersistenceError(TraitPathError):
    """Remote read/write failure. Not retried here."""

    status_code = 502
