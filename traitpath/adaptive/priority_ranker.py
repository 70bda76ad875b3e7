"""
Priority Ranker.

priority_score = final_weight x urgency x readiness, where urgency is 1.5 for
skills the user is struggling with. Output is sorted by score descending,
then skill_id ascending, so identical inputs always rank identically.
"""
from __future__ import annotations

from collections.abc import Sequence

from traitpath.core.models import PrioritizedSkill, SkillWeight

STRUGGLING_URGENCY = 1.5


class PriorityRanker:
    """Rank SkillWeights into PrioritizedSkills."""

    @staticmethod
    def urgency_multiplier(weight: SkillWeight) -> float:
        return STRUGGLING_URGENCY if weight.development_stage.is_struggling else 1.0

    @classmethod
    def priority_score(cls, weight: SkillWeight) -> float:
        return weight.final_weight * cls.urgency_multiplier(weight) * weight.development_stage.readiness

    def rank(self, weights: Sequence[SkillWeight]) -> list[PrioritizedSkill]:
        ranked = [
            PrioritizedSkill(
                skill_id=w.skill_id,
                priority_score=self.priority_score(w),
                development_stage=w.development_stage,
                prerequisites=w.prerequisites,
            )
            for w in weights
        ]
        ranked.sort(key=lambda p: (-p.priority_score, p.skill_id))
        return ranked

    @staticmethod
    def learning_focus(ranked: Sequence[PrioritizedSkill], size: int = 5) -> list[PrioritizedSkill]:
        """Top of the ranking kept as the active learning focus."""
        return list(ranked[:size])
