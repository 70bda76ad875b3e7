"""
Weight Calculator.

Computes a SkillWeight per active skill from a TraitSet and the catalog.

Formula:
- base = seed importance x stakes multiplier x struggling multiplier, clamped to [0, 1]
- final = base x prod(1 + (influence.importance - 0.5) x 0.4), clamped to [0, 1]

Initial calculation aggregates every pattern that references a skill
(average importance, development-order and prerequisite discounts) before
the base step. Practice updates score each (pattern, mapping) pair on its own
and keep the strongest candidate per skill.
"""
from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from loguru import logger

from traitpath.core.errors import ConfigurationError
from traitpath.core.models import (
    DEFAULT_STAGE,
    DevelopmentStage,
    DevelopmentStageRule,
    SkillCatalog,
    SkillMapping,
    SkillWeight,
    StakesLevel,
    TraitInfluence,
    TraitName,
    TraitPattern,
    TraitSet,
    WeightEvidence,
)

STAKES_MULTIPLIERS: dict[StakesLevel, float] = {
    StakesLevel.HIGH: 1.2,
    StakesLevel.MEDIUM: 1.0,
    StakesLevel.LOW: 0.8,
}
STRUGGLING_MULTIPLIER = 1.3

# (dimension, importance, role)
INFLUENCE_SPECS: tuple[tuple[TraitName, float, str], ...] = (
    (TraitName.STAKES_LEVEL, 0.8, "modifier"),
    (TraitName.CONFIDENCE_PATTERN, 0.9, "primary"),
    (TraitName.INTERACTION_STYLE, 0.7, "context"),
)
INFLUENCE_SENSITIVITY = 0.4

DEV_ORDER_STEP = 0.05
DEV_ORDER_FLOOR = 0.5
PREREQUISITE_DISCOUNT = 0.8

# Lesson feedback: success eases the weight, failure raises it
PRACTICE_FACTORS = {"success": 0.8, "failure": 1.2}
PRACTICE_STAGES = {
    "success": DevelopmentStage(current="developing", target="mastering", readiness=0.8),
    "failure": DevelopmentStage(current="struggling", target="mastering", readiness=0.4),
}


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _merge_unique(*groups: Sequence[Any]) -> tuple[Any, ...]:
    seen: dict[Any, None] = {}
    for group in groups:
        for item in group:
            seen.setdefault(item, None)
    return tuple(seen)


class WeightCalculator:
    """Turn traits and catalog mappings into SkillWeights."""

    def __init__(self, catalog: SkillCatalog):
        if catalog.mapping_count == 0:
            raise ConfigurationError("Trait/skill mapping catalog is empty")
        if next(catalog.active_mappings(), None) is None:
            raise ConfigurationError(
                "Catalog has no mappings to active skills",
                details={"mapping_count": catalog.mapping_count},
            )
        self._catalog = catalog

    # ------------------------------------------------------------------
    # Formula steps
    # ------------------------------------------------------------------

    @staticmethod
    def base_weight(importance: float, traits: TraitSet) -> float:
        """Adjust an importance value for stakes and struggling confidence."""
        weight = importance * STAKES_MULTIPLIERS[traits.stakes_level]
        if traits.is_struggling:
            weight *= STRUGGLING_MULTIPLIER
        return clamp(weight)

    @staticmethod
    def trait_influences(traits: TraitSet) -> tuple[TraitInfluence, ...]:
        """One influence per observed (non-defaulted) weighted dimension."""
        influences = []
        for name, importance, role in INFLUENCE_SPECS:
            reading = traits.reading(name)
            if reading.defaulted:
                continue
            influences.append(
                TraitInfluence(trait=name, value=reading.value, importance=importance, role=role)
            )
        return tuple(influences)

    @staticmethod
    def final_weight(base_weight: float, influences: Sequence[TraitInfluence]) -> float:
        """Multiplicative influence adjustment, clamped to [0, 1]."""
        weight = base_weight
        for influence in influences:
            weight *= 1 + (influence.importance - 0.5) * INFLUENCE_SENSITIVITY
        return clamp(weight)

    def development_stage(
        self, skill_id: int, traits: TraitSet
    ) -> tuple[DevelopmentStage, DevelopmentStageRule | None]:
        """First rule for the skill whose stage_from occurs in the confidence pattern."""
        confidence = traits.confidence_pattern.value
        for rule in self._catalog.stage_rules():
            if rule.skill_id == skill_id and rule.stage_from and rule.stage_from.lower() in confidence:
                return (
                    DevelopmentStage(
                        current=rule.stage_from,
                        target=rule.stage_to,
                        readiness=rule.readiness_score,
                    ),
                    rule,
                )
        return DEFAULT_STAGE, None

    def prerequisites_for(self, skill_id: int, traits: TraitSet) -> tuple[int, ...]:
        """Mapping prerequisites plus those of the matched stage rule, retired skills removed."""
        _, rule = self.development_stage(skill_id, traits)
        return self._usable_prerequisites(
            self._catalog.prerequisites_for(skill_id), rule.prerequisites if rule else ()
        )

    def _usable_prerequisites(self, *groups: Sequence[int]) -> tuple[int, ...]:
        # Unknown ids stay so path building can reject the dangling reference
        return tuple(
            prereq
            for prereq in _merge_unique(*groups)
            if self._catalog.is_active(prereq) or not self._catalog.is_known(prereq)
        )

    @staticmethod
    def development_order_factor(max_development_order: int) -> float:
        return max(DEV_ORDER_FLOOR, 1.0 - (max_development_order - 1) * DEV_ORDER_STEP)

    # ------------------------------------------------------------------
    # Initial calculation (aggregated across patterns)
    # ------------------------------------------------------------------

    def calculate_initial(self, traits: TraitSet) -> list[SkillWeight]:
        """
        Aggregate mappings per skill across all patterns, then weight.

        Args:
            traits: Normalised traits for this assessment

        Returns:
            One SkillWeight per active skill, in first-seen catalog order
        """
        grouped: dict[int, list[tuple[TraitPattern, SkillMapping]]] = defaultdict(list)
        for pattern, mapping in self._catalog.active_mappings():
            grouped[mapping.skill_id].append((pattern, mapping))

        influences = self.trait_influences(traits)
        weights = []
        for skill_id, pairs in grouped.items():
            mappings = [m for _, m in pairs]
            average = sum(m.importance for m in mappings) / len(mappings)
            dev_factor = self.development_order_factor(max(m.development_order for m in mappings))
            mapping_prereqs = self._usable_prerequisites(*(m.prerequisites for m in mappings))
            prereq_factor = PREREQUISITE_DISCOUNT if mapping_prereqs else 1.0
            seed = average * dev_factor * prereq_factor

            stage, rule = self.development_stage(skill_id, traits)
            base = self.base_weight(seed, traits)

            factors = [
                {"source": f"pattern:{p.pattern_key}", "value": m.importance, "role": m.role}
                for p, m in pairs
            ]
            factors.append({"source": "average_importance", "value": average})
            factors.append({"source": "development_order", "value": dev_factor})
            factors.append({"source": "prerequisites", "value": prereq_factor})

            weights.append(
                SkillWeight(
                    skill_id=skill_id,
                    base_weight=base,
                    final_weight=self.final_weight(base, influences),
                    development_stage=stage,
                    trait_influences=influences,
                    evidence=WeightEvidence(
                        importance_factors=tuple(factors),
                        learning_path=rule.learning_focus if rule else (),
                        practice_areas=_merge_unique(*(m.practice_areas for m in mappings)),
                        trait_source=traits.source,
                    ),
                    prerequisites=self._usable_prerequisites(
                        mapping_prereqs, rule.prerequisites if rule else ()
                    ),
                )
            )

        logger.debug(f"Initial calculation produced {len(weights)} skill weights")
        return weights

    # ------------------------------------------------------------------
    # Practice update (per pattern, not aggregated)
    # ------------------------------------------------------------------

    def calculate_update(
        self,
        traits: TraitSet,
        previous: Sequence[SkillWeight] = (),
    ) -> list[SkillWeight]:
        """
        Score each (pattern, mapping) pair on its own; keep the strongest per skill.

        A skill whose stage falls back to the default keeps the stage from its
        previous weight, if any.
        """
        previous_by_skill = {w.skill_id: w for w in previous}
        influences = self.trait_influences(traits)
        best: dict[int, SkillWeight] = {}

        for pattern, mapping in self._catalog.active_mappings():
            stage, rule = self.development_stage(mapping.skill_id, traits)
            if rule is None and mapping.skill_id in previous_by_skill:
                stage = previous_by_skill[mapping.skill_id].development_stage

            base = self.base_weight(mapping.importance, traits)
            candidate = SkillWeight(
                skill_id=mapping.skill_id,
                base_weight=base,
                final_weight=self.final_weight(base, influences),
                development_stage=stage,
                trait_influences=influences,
                evidence=WeightEvidence(
                    importance_factors=(
                        {
                            "source": f"pattern:{pattern.pattern_key}",
                            "value": mapping.importance,
                            "role": mapping.role,
                        },
                    ),
                    learning_path=rule.learning_focus if rule else (),
                    practice_areas=mapping.practice_areas,
                    trait_source=traits.source,
                ),
                prerequisites=self._usable_prerequisites(
                    self._catalog.prerequisites_for(mapping.skill_id),
                    rule.prerequisites if rule else (),
                ),
            )

            current = best.get(mapping.skill_id)
            if current is None or candidate.final_weight > current.final_weight:
                best[mapping.skill_id] = candidate

        logger.debug(f"Practice update produced {len(best)} skill weights")
        return list(best.values())

    def apply_practice_results(
        self,
        weights: Sequence[SkillWeight],
        skill_ids: Sequence[int],
        criteria_results: Mapping[str, Mapping[str, Any]],
    ) -> list[SkillWeight]:
        """
        Fold lesson outcomes into freshly computed weights.

        Criteria are matched to ``skill_ids`` by position. Returns new
        SkillWeight objects; the inputs are left untouched.
        """
        evaluations: dict[int, tuple[str, str]] = {}
        for (criterion, result), skill_id in zip(criteria_results.items(), skill_ids):
            outcome = "success" if str(result.get("result", "")).lower() == "success" else "failure"
            evaluations[skill_id] = (criterion, outcome)

        adjusted = []
        for weight in weights:
            if weight.skill_id not in evaluations:
                adjusted.append(weight)
                continue
            criterion, outcome = evaluations[weight.skill_id]
            factor = PRACTICE_FACTORS[outcome]
            evidence = replace(
                weight.evidence,
                importance_factors=weight.evidence.importance_factors
                + ({"source": f"practice:{criterion}", "value": factor, "role": outcome},),
            )
            adjusted.append(
                replace(
                    weight,
                    final_weight=clamp(weight.final_weight * factor),
                    development_stage=PRACTICE_STAGES[outcome],
                    evidence=evidence,
                )
            )
        return adjusted
