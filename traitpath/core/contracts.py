"""
Read/write contracts the orchestrator depends on.

Implementations are injected at construction time. The SQLAlchemy versions
live in ``traitpath.db.repositories``.
"""

from __future__ import annotations

from typing import Any, Protocol

from traitpath.core.models import (
    CalculationResult,
    ConversationRecord,
    SkillCatalog,
    SkillWeight,
    StoredTraits,
)


class CatalogReader(Protocol):
    """Loads trait patterns joined with active skill mappings and stage rules."""

    def load_catalog(self) -> SkillCatalog: ...


class ConversationSource(Protocol):
    """Looks up conversation evidence."""

    def get_conversation(self, conversation_id: str) -> ConversationRecord | None: ...


class CalculationStore(Protocol):
    """
    Trait/weight/path persistence.

    Concurrent calculations for the same user are not serialised by the
    engine: weights and traits are append-only (latest row wins on read) and
    the learning path document is upserted per user.
    """

    def latest_traits(self, user_id: str) -> StoredTraits | None: ...

    def latest_weights(self, user_id: str) -> list[SkillWeight]: ...

    def save_calculation(self, result: CalculationResult) -> None: ...

    def get_learning_path(self, user_id: str) -> dict[str, Any] | None: ...
