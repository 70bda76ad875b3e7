"""
Per-user models: conversations, traits, weights and learning paths.

History tables (traits, weights) are append-only and read "most recent
wins". The learning path is one document per user, replaced on every
successful calculation.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Float, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserConversation(Base):
    """A completed voice conversation and its analysis."""

    __tablename__ = "user_conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    clerk_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # {"type": "onboarding" | "lesson", "skill_ids": [...]}
    scenario_info: Mapped[dict | None] = mapped_column(JSON)
    # Explicit trait record from the upstream classifier
    data_collection_results: Mapped[dict | None] = mapped_column(JSON)
    # {"evaluation_criteria_results": {...}, "trait_evaluations": {...}}
    analysis: Mapped[dict | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<UserConversation {self.conversation_id} user={self.clerk_id}>"


class UserTraits(Base):
    """One TraitSet per calculation."""

    __tablename__ = "user_traits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clerk_id: Mapped[str] = mapped_column(Text, nullable=False)
    conversation_id: Mapped[str | None] = mapped_column(Text)
    trait_values: Mapped[dict] = mapped_column(JSON, nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False, default="stored")

    created_at: Mapped[datetime] = mapped_column(default=func.now())

    __table_args__ = (Index("idx_user_traits_latest", "clerk_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<UserTraits user={self.clerk_id} source={self.source}>"


class UserSkillWeight(Base):
    """One SkillWeight row per skill per calculation."""

    __tablename__ = "user_skill_weights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clerk_id: Mapped[str] = mapped_column(Text, nullable=False)
    skill_id: Mapped[int] = mapped_column(Integer, nullable=False)
    calculation_id: Mapped[str] = mapped_column(Text, nullable=False)
    mode: Mapped[str] = mapped_column(Text, nullable=False)

    final_weight: Mapped[float] = mapped_column(Float, nullable=False)
    weight_data: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=func.now())

    __table_args__ = (
        Index("idx_skill_weights_user_skill", "clerk_id", "skill_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<UserSkillWeight user={self.clerk_id} skill={self.skill_id} weight={self.final_weight}>"


class UserLearningPath(Base):
    """Current learning path document for a user."""

    __tablename__ = "user_learning_paths"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clerk_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    calculation_id: Mapped[str] = mapped_column(Text, nullable=False)
    mode: Mapped[str] = mapped_column(Text, nullable=False)

    path: Mapped[list] = mapped_column(JSON, nullable=False)
    prioritized_skills: Mapped[list] = mapped_column(JSON, nullable=False)
    learning_focus: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(default=func.now())
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<UserLearningPath user={self.clerk_id} nodes={len(self.path or [])}>"
