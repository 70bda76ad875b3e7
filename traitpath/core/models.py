"""
Core domain records for trait-to-skill weighting.

Design:
- TraitName / StakesLevel / TraitSource: closed vocabularies for trait data
- TraitReading / TraitSet: canonical, immutable trait observations
- StoredTraits: a previously saved trait record and its source
- SkillInfo / SkillMapping / DevelopmentStageRule / TraitPattern / SkillCatalog:
  read-only reference data loaded from the catalog
- SkillWeight / PrioritizedSkill / LearningPathNode: calculation output
- ConversationRecord / CalculationResult: orchestration inputs and outputs

All records are frozen dataclasses. A new calculation produces new records;
nothing here is mutated in place.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from traitpath.core.errors import ConfigurationError


class TraitName(str, Enum):
    """The five recognised trait dimensions."""

    STAKES_LEVEL = "stakes_level"
    CONFIDENCE_PATTERN = "confidence_pattern"
    INTERACTION_STYLE = "interaction_style"
    LIFE_CONTEXT = "life_context"
    GROWTH_MOTIVATION = "growth_motivation"


class StakesLevel(str, Enum):
    """Canonical stakes levels."""

    HIGH = "high_stakes"
    MEDIUM = "medium_stakes"
    LOW = "low_stakes"


class TraitSource(str, Enum):
    """Where a TraitSet came from. Stored in weight evidence."""

    STORED = "stored"  # Authoritative trait record (conversation or user_traits)
    DERIVED = "derived"  # Heuristic from per-criterion pass/fail results
    OVERRIDE = "override"  # Supplied explicitly by an admin/recovery caller


class CalculationMode(str, Enum):
    """Orchestrator modes."""

    INITIAL = "initial_calculation"
    PRACTICE = "practice_update"


class PriorityLevel(str, Enum):
    """Coarse urgency bucket for a learning path node."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


STRUGGLING = "struggling"


# =============================================================================
# Traits
# =============================================================================


@dataclass(frozen=True)
class TraitReading:
    """A single trait dimension: categorical value plus free-text rationale."""

    value: str
    rationale: str = ""
    defaulted: bool = False  # True when filled in because the dimension was absent

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "rationale": self.rationale, "defaulted": self.defaulted}


@dataclass(frozen=True)
class TraitSet:
    """
    Canonical trait readings for one assessment event.

    Every dimension is always populated; absent dimensions carry a default
    reading with ``defaulted=True``.
    """

    stakes_level: StakesLevel
    stakes_rationale: str
    confidence_pattern: TraitReading
    interaction_style: TraitReading
    life_context: TraitReading
    growth_motivation: TraitReading
    source: TraitSource = TraitSource.STORED
    stakes_defaulted: bool = False

    def reading(self, name: TraitName) -> TraitReading:
        """Return the reading for a dimension (stakes rendered as a TraitReading)."""
        if name is TraitName.STAKES_LEVEL:
            return TraitReading(
                value=self.stakes_level.value,
                rationale=self.stakes_rationale,
                defaulted=self.stakes_defaulted,
            )
        return getattr(self, name.value)

    def items(self) -> Iterator[tuple[TraitName, TraitReading]]:
        for name in TraitName:
            yield name, self.reading(name)

    @property
    def is_struggling(self) -> bool:
        return STRUGGLING in self.confidence_pattern.value

    def to_dict(self) -> dict[str, Any]:
        """Serialise in the `{name: {value, rationale}}` record shape."""
        data: dict[str, Any] = {name.value: reading.to_dict() for name, reading in self.items()}
        data["source"] = self.source.value
        return data



@dataclass(frozen=True)
class StoredTraits:
    """A persisted trait record together with the provenance it was saved with."""

    record: Mapping[str, Any]
    source: TraitSource = TraitSource.STORED


# =============================================================================
# Catalog (reference data)
# =============================================================================


@dataclass(frozen=True)
class SkillInfo:
    """A catalog skill. Inactive skills are retired and never emitted."""

    skill_id: int
    name: str
    category: str | None = None
    parent_skill_id: int | None = None
    is_active: bool = True


@dataclass(frozen=True)
class SkillMapping:
    """Declared relationship between a trait pattern and a skill."""

    skill_id: int
    importance: float
    role: str = "primary"
    development_order: int = 1
    indicators: tuple[str, ...] = ()
    practice_areas: tuple[str, ...] = ()
    prerequisites: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.importance <= 1.0:
            raise ConfigurationError(
                f"Mapping for skill {self.skill_id} has importance {self.importance} outside [0, 1]",
                details={"skill_id": self.skill_id, "importance": self.importance},
            )
        if self.development_order < 1:
            raise ConfigurationError(
                f"Mapping for skill {self.skill_id} has development_order {self.development_order} < 1",
                details={"skill_id": self.skill_id, "development_order": self.development_order},
            )


@dataclass(frozen=True)
class DevelopmentStageRule:
    """Valid stage transition for a skill, keyed by the user's current stage."""

    skill_id: int
    stage_from: str
    stage_to: str
    readiness_score: float
    prerequisites: tuple[int, ...] = ()
    learning_focus: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.readiness_score <= 1.0:
            raise ConfigurationError(
                f"Stage rule for skill {self.skill_id} has readiness {self.readiness_score} outside [0, 1]",
                details={"skill_id": self.skill_id, "readiness_score": self.readiness_score},
            )


@dataclass(frozen=True)
class TraitPattern:
    """A named trait cluster with its skill mappings and stage rules."""

    pattern_key: str
    trait_type: str
    skill_mappings: tuple[SkillMapping, ...] = ()
    development_stages: tuple[DevelopmentStageRule, ...] = ()


@dataclass(frozen=True)
class SkillCatalog:
    """
    Snapshot of the catalog for one invocation.

    ``skills`` holds every known skill, active or not, so callers can tell
    an inactive prerequisite apart from an unknown one.
    """

    patterns: tuple[TraitPattern, ...]
    skills: Mapping[int, SkillInfo] = field(default_factory=dict)

    def get_skill(self, skill_id: int) -> SkillInfo | None:
        return self.skills.get(skill_id)

    def is_known(self, skill_id: int) -> bool:
        return skill_id in self.skills

    def is_active(self, skill_id: int) -> bool:
        skill = self.skills.get(skill_id)
        return skill is not None and skill.is_active

    def active_mappings(self) -> Iterator[tuple[TraitPattern, SkillMapping]]:
        """Yield (pattern, mapping) pairs whose skill is active, in catalog order."""
        for pattern in self.patterns:
            for mapping in pattern.skill_mappings:
                if self.is_active(mapping.skill_id):
                    yield pattern, mapping

    def stage_rules(self) -> Iterator[DevelopmentStageRule]:
        for pattern in self.patterns:
            yield from pattern.development_stages

    def prerequisites_for(self, skill_id: int) -> tuple[int, ...]:
        """Union of mapping prerequisites declared for a skill, first-seen order."""
        seen: dict[int, None] = {}
        for _, mapping in self.active_mappings():
            if mapping.skill_id == skill_id:
                for prereq in mapping.prerequisites:
                    seen.setdefault(prereq, None)
        return tuple(seen)

    @property
    def mapping_count(self) -> int:
        return sum(len(p.skill_mappings) for p in self.patterns)


# =============================================================================
# Calculation output
# =============================================================================


@dataclass(frozen=True)
class DevelopmentStage:
    """A user's current vs target band for a skill."""

    current: str
    target: str
    readiness: float

    @property
    def is_struggling(self) -> bool:
        return self.current == STRUGGLING

    def to_dict(self) -> dict[str, Any]:
        return {"current": self.current, "target": self.target, "readiness": self.readiness}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DevelopmentStage:
        return cls(
            current=str(data.get("current", "developing")),
            target=str(data.get("target", "mastering")),
            readiness=float(data.get("readiness", 0.5)),
        )


DEFAULT_STAGE = DevelopmentStage(current="developing", target="mastering", readiness=0.5)


@dataclass(frozen=True)
class TraitInfluence:
    """Explanatory record of how a trait dimension bears on a weight."""

    trait: TraitName
    value: str
    importance: float
    role: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "trait": self.trait.value,
            "value": self.value,
            "importance": self.importance,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TraitInfluence:
        return cls(
            trait=TraitName(data["trait"]),
            value=str(data.get("value", "")),
            importance=float(data["importance"]),
            role=str(data.get("role", "")),
        )


@dataclass(frozen=True)
class WeightEvidence:
    """Why a weight came out the way it did."""

    importance_factors: tuple[dict[str, Any], ...] = ()
    learning_path: tuple[str, ...] = ()
    practice_areas: tuple[str, ...] = ()
    trait_source: TraitSource = TraitSource.STORED

    def to_dict(self) -> dict[str, Any]:
        return {
            "importance_factors": [dict(f) for f in self.importance_factors],
            "learning_path": list(self.learning_path),
            "practice_areas": list(self.practice_areas),
            "trait_source": self.trait_source.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WeightEvidence:
        return cls(
            importance_factors=tuple(dict(f) for f in data.get("importance_factors", [])),
            learning_path=tuple(data.get("learning_path", [])),
            practice_areas=tuple(data.get("practice_areas", [])),
            trait_source=TraitSource(data.get("trait_source", TraitSource.STORED.value)),
        )


@dataclass(frozen=True)
class SkillWeight:
    """Per-skill weight produced by one calculation."""

    skill_id: int
    base_weight: float
    final_weight: float
    development_stage: DevelopmentStage = DEFAULT_STAGE
    trait_influences: tuple[TraitInfluence, ...] = ()
    evidence: WeightEvidence = field(default_factory=WeightEvidence)
    prerequisites: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "base_weight": self.base_weight,
            "trait_influences": [i.to_dict() for i in self.trait_influences],
            "final_weight": self.final_weight,
            "development_stage": self.development_stage.to_dict(),
            "evidence": self.evidence.to_dict(),
            "prerequisites": list(self.prerequisites),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SkillWeight:
        return cls(
            skill_id=int(data["skill_id"]),
            base_weight=float(data["base_weight"]),
            final_weight=float(data["final_weight"]),
            development_stage=DevelopmentStage.from_dict(data.get("development_stage", {})),
            trait_influences=tuple(
                TraitInfluence.from_dict(i) for i in data.get("trait_influences", [])
            ),
            evidence=WeightEvidence.from_dict(data.get("evidence", {})),
            prerequisites=tuple(int(p) for p in data.get("prerequisites", [])),
        )


@dataclass(frozen=True)
class PrioritizedSkill:
    """A ranked skill. Ephemeral; recomputed every run."""

    skill_id: int
    priority_score: float
    development_stage: DevelopmentStage
    prerequisites: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "priority_score": self.priority_score,
            "prerequisites": list(self.prerequisites),
            "development_stage": self.development_stage.to_dict(),
        }


@dataclass(frozen=True)
class LearningPathNode:
    """One skill in a learning path. Prerequisites always precede dependents."""

    skill_id: int
    required_skills: tuple[int, ...]
    learning_activities: tuple[str, ...]
    estimated_duration_minutes: int
    priority_level: PriorityLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "required_skills": list(self.required_skills),
            "learning_activities": list(self.learning_activities),
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "priority_level": self.priority_level.value,
        }


# =============================================================================
# Orchestration
# =============================================================================


@dataclass(frozen=True)
class ConversationRecord:
    """Conversation evidence consumed by the orchestrator."""

    conversation_id: str
    user_id: str
    scenario_type: str = "lesson"
    skill_ids: tuple[int, ...] = ()
    trait_record: Mapping[str, Any] | None = None
    criteria_results: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @property
    def is_onboarding(self) -> bool:
        return self.scenario_type == "onboarding"


@dataclass(frozen=True)
class CalculationResult:
    """Everything one calculation produced, ready to persist and return."""

    user_id: str
    conversation_id: str
    mode: CalculationMode
    traits: TraitSet
    weights: tuple[SkillWeight, ...]
    prioritized_skills: tuple[PrioritizedSkill, ...]
    learning_focus: tuple[int, ...]
    learning_path: tuple[LearningPathNode, ...]
    calculated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_response(self) -> dict[str, Any]:
        """Render the trigger-surface JSON document."""
        return {
            "success": True,
            "mode": self.mode.value,
            "traitSource": self.traits.source.value,
            "weights": [w.to_dict() for w in self.weights],
            "prioritizedSkills": [p.to_dict() for p in self.prioritized_skills],
            "learningFocus": list(self.learning_focus),
            "learningPath": [n.to_dict() for n in self.learning_path],
            "calculatedAt": self.calculated_at.isoformat(),
        }
