"""
Catalog models: skills and trait-pattern reference data.

Read-only at calculation time. A skill with ``is_active = False`` is retired:
its mappings are filtered at the join and it never appears in output.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Skill(Base):
    """A practicable skill, optionally nested under a parent skill."""

    __tablename__ = "skills"

    skill_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)
    parent_skill_id: Mapped[int | None] = mapped_column(
        ForeignKey("skills.skill_id", ondelete="SET NULL")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=func.now())
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Skill {self.skill_id} {self.name!r} active={self.is_active}>"


class TraitPatternRow(Base):
    """A named trait cluster (e.g. high-stakes confident)."""

    __tablename__ = "trait_patterns"

    pattern_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pattern_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    trait_type: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(default=func.now())

    skill_mappings: Mapped[list[TraitSkillMapping]] = relationship(
        back_populates="pattern",
        cascade="all, delete-orphan",
        order_by="TraitSkillMapping.id",
    )
    development_stages: Mapped[list[TraitDevelopmentStage]] = relationship(
        back_populates="pattern",
        cascade="all, delete-orphan",
        order_by="TraitDevelopmentStage.id",
    )

    def __repr__(self) -> str:
        return f"<TraitPattern {self.pattern_key} ({self.trait_type})>"


class TraitSkillMapping(Base):
    """Importance, order and prerequisites of a skill within a pattern."""

    __tablename__ = "trait_skill_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pattern_id: Mapped[int] = mapped_column(
        ForeignKey("trait_patterns.pattern_id", ondelete="CASCADE"), nullable=False
    )
    skill_id: Mapped[int] = mapped_column(
        ForeignKey("skills.skill_id", ondelete="CASCADE"), nullable=False
    )

    importance: Mapped[float] = mapped_column(Float, nullable=False)
    role: Mapped[str] = mapped_column(Text, default="primary")
    development_order: Mapped[int] = mapped_column(Integer, default=1)
    indicators: Mapped[list] = mapped_column(JSON, default=list)
    practice_areas: Mapped[list] = mapped_column(JSON, default=list)
    prerequisites: Mapped[list] = mapped_column(JSON, default=list)

    pattern: Mapped[TraitPatternRow] = relationship(back_populates="skill_mappings")
    skill: Mapped[Skill] = relationship()

    def __repr__(self) -> str:
        return f"<TraitSkillMapping pattern={self.pattern_id} skill={self.skill_id} importance={self.importance}>"


class TraitDevelopmentStage(Base):
    """Stage transition rule for a skill under a pattern."""

    __tablename__ = "trait_development_stages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pattern_id: Mapped[int] = mapped_column(
        ForeignKey("trait_patterns.pattern_id", ondelete="CASCADE"), nullable=False
    )
    skill_id: Mapped[int] = mapped_column(
        ForeignKey("skills.skill_id", ondelete="CASCADE"), nullable=False
    )

    stage_from: Mapped[str] = mapped_column(Text, nullable=False)
    stage_to: Mapped[str] = mapped_column(Text, nullable=False)
    readiness_score: Mapped[float] = mapped_column(Float, default=0.5)
    prerequisites: Mapped[list] = mapped_column(JSON, default=list)
    learning_focus: Mapped[list] = mapped_column(JSON, default=list)

    pattern: Mapped[TraitPatternRow] = relationship(back_populates="development_stages")

    def __repr__(self) -> str:
        return f"<TraitDevelopmentStage skill={self.skill_id} {self.stage_from}->{self.stage_to}>"
