"""
SQLAlchemy implementations of the catalog, conversation and store contracts.

Each repository wraps a Session owned by the caller (see ``session_scope``).
Database failures surface as PersistenceError; nothing here retries.
"""

from __future__ import annotations

import uuid
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from traitpath.core.errors import PersistenceError
from traitpath.core.models import (
    CalculationResult,
    ConversationRecord,
    DevelopmentStageRule,
    SkillCatalog,
    SkillInfo,
    SkillMapping,
    SkillWeight,
    StoredTraits,
    TraitPattern,
    TraitSource,
)
from traitpath.db.models import (
    Skill,
    TraitPatternRow,
    UserConversation,
    UserLearningPath,
    UserSkillWeight,
    UserTraits,
)


class SqlCatalogRepository:
    """Trait patterns joined with active-skill mappings and stage rules."""

    def __init__(self, session: Session):
        self._session = session

    def load_catalog(self) -> SkillCatalog:
        try:
            skills = self._session.scalars(select(Skill)).all()
            rows = self._session.scalars(
                select(TraitPatternRow)
                .options(
                    selectinload(TraitPatternRow.skill_mappings),
                    selectinload(TraitPatternRow.development_stages),
                )
                .order_by(TraitPatternRow.pattern_id)
            ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load skill catalog: {e}") from e

        skill_map = {
            s.skill_id: SkillInfo(
                skill_id=s.skill_id,
                name=s.name,
                category=s.category,
                parent_skill_id=s.parent_skill_id,
                is_active=bool(s.is_active),
            )
            for s in skills
        }
        active_ids = {sid for sid, info in skill_map.items() if info.is_active}

        patterns = tuple(
            TraitPattern(
                pattern_key=row.pattern_key,
                trait_type=row.trait_type,
                skill_mappings=tuple(
                    SkillMapping(
                        skill_id=m.skill_id,
                        importance=float(m.importance),
                        role=m.role or "primary",
                        development_order=m.development_order or 1,
                        indicators=tuple(m.indicators or ()),
                        practice_areas=tuple(m.practice_areas or ()),
                        prerequisites=tuple(int(p) for p in m.prerequisites or ()),
                    )
                    for m in row.skill_mappings
                    if m.skill_id in active_ids
                ),
                development_stages=tuple(
                    DevelopmentStageRule(
                        skill_id=d.skill_id,
                        stage_from=d.stage_from,
                        stage_to=d.stage_to,
                        readiness_score=float(d.readiness_score),
                        prerequisites=tuple(int(p) for p in d.prerequisites or ()),
                        learning_focus=tuple(d.learning_focus or ()),
                    )
                    for d in row.development_stages
                    if d.skill_id in active_ids
                ),
            )
            for row in rows
        )

        logger.debug(
            f"Loaded catalog: {len(patterns)} patterns, "
            f"{sum(len(p.skill_mappings) for p in patterns)} active mappings, "
            f"{len(skill_map)} skills"
        )
        return SkillCatalog(patterns=patterns, skills=skill_map)


class SqlConversationRepository:
    """Conversation evidence lookups."""

    def __init__(self, session: Session):
        self._session = session

    def get_conversation(self, conversation_id: str) -> ConversationRecord | None:
        try:
            row = self._session.scalars(
                select(UserConversation).where(UserConversation.conversation_id == conversation_id)
            ).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load conversation {conversation_id}: {e}") from e

        if row is None:
            return None

        scenario = row.scenario_info or {}
        analysis = row.analysis or {}
        trait_record = (
            row.data_collection_results
            or analysis.get("trait_evaluations")
            or analysis.get("data_collection_results")
        )
        return ConversationRecord(
            conversation_id=row.conversation_id,
            user_id=row.clerk_id,
            scenario_type=str(scenario.get("type", "lesson")),
            skill_ids=tuple(int(s) for s in scenario.get("skill_ids") or ()),
            trait_record=trait_record or None,
            criteria_results=analysis.get("evaluation_criteria_results") or {},
        )


class SqlCalculationStore:
    """Append-only trait/weight history plus the per-user path document."""

    def __init__(self, session: Session):
        self._session = session

    def latest_traits(self, user_id: str) -> StoredTraits | None:
        """Newest trait record for the user, keeping the source it was saved with."""
        try:
            row = self._session.scalars(
                select(UserTraits)
                .where(UserTraits.clerk_id == user_id)
                .order_by(UserTraits.created_at.desc(), UserTraits.id.desc())
                .limit(1)
            ).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load traits for {user_id}: {e}") from e

        if row is None:
            return None
        return StoredTraits(
            record={k: v for k, v in row.trait_values.items() if k != "source"},
            source=TraitSource(row.source),
        )

    def latest_weights(self, user_id: str) -> list[SkillWeight]:
        """Most recent weight row per skill."""
        try:
            rows = self._session.scalars(
                select(UserSkillWeight)
                .where(UserSkillWeight.clerk_id == user_id)
                .order_by(UserSkillWeight.created_at.desc(), UserSkillWeight.id.desc())
            ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load weights for {user_id}: {e}") from e

        latest: dict[int, SkillWeight] = {}
        for row in rows:
            if row.skill_id not in latest:
                latest[row.skill_id] = SkillWeight.from_dict(row.weight_data)
        return list(latest.values())

    def save_calculation(self, result: CalculationResult) -> None:
        calculation_id = uuid.uuid4().hex
        try:
            self._session.add(
                UserTraits(
                    clerk_id=result.user_id,
                    conversation_id=result.conversation_id,
                    trait_values=result.traits.to_dict(),
                    source=result.traits.source.value,
                    created_at=result.calculated_at,
                )
            )
            self._session.add_all(
                UserSkillWeight(
                    clerk_id=result.user_id,
                    skill_id=weight.skill_id,
                    calculation_id=calculation_id,
                    mode=result.mode.value,
                    final_weight=weight.final_weight,
                    weight_data=weight.to_dict(),
                    created_at=result.calculated_at,
                )
                for weight in result.weights
            )
            self._upsert_learning_path(result, calculation_id)
            self._session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save calculation for {result.user_id}: {e}") from e

        logger.debug(f"Saved calculation {calculation_id} for {result.user_id}")

    def _upsert_learning_path(self, result: CalculationResult, calculation_id: str) -> None:
        document = self._session.scalars(
            select(UserLearningPath).where(UserLearningPath.clerk_id == result.user_id)
        ).first()
        if document is None:
            document = UserLearningPath(clerk_id=result.user_id)
            self._session.add(document)

        document.calculation_id = calculation_id
        document.mode = result.mode.value
        document.path = [node.to_dict() for node in result.learning_path]
        document.prioritized_skills = [p.to_dict() for p in result.prioritized_skills]
        document.learning_focus = list(result.learning_focus)
        document.updated_at = result.calculated_at

    def get_learning_path(self, user_id: str) -> dict[str, Any] | None:
        try:
            document = self._session.scalars(
                select(UserLearningPath).where(UserLearningPath.clerk_id == user_id)
            ).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load learning path for {user_id}: {e}") from e

        if document is None:
            return None
        return {
            "user_id": document.clerk_id,
            "mode": document.mode,
            "learning_path": document.path,
            "prioritized_skills": document.prioritized_skills,
            "learning_focus": document.learning_focus,
            "updated_at": document.updated_at.isoformat() if document.updated_at else None,
        }
