"""
Trait-to-Skill Weighting Engine.

Components:
- TraitNormalizer: Canonical TraitSet from raw or derived trait data
- SkillHierarchyResolver: Ancestor chains for activity phrasing and durations
- WeightCalculator: Per-skill weights from traits and the mapping catalog
- PriorityRanker: Urgency/readiness ranking
- PathBuilder: Prerequisite-ordered, bounded learning paths
- CalculationOrchestrator: initial_calculation / practice_update pipeline
"""
from traitpath.adaptive.orchestrator import CalculationOrchestrator
from traitpath.adaptive.path_builder import PathBuilder
from traitpath.adaptive.priority_ranker import PriorityRanker
from traitpath.adaptive.skill_hierarchy import SkillHierarchyResolver
from traitpath.adaptive.trait_normalizer import (
    DerivedTraitStrategy,
    StoredTraitStrategy,
    TraitNormalizer,
)
from traitpath.adaptive.weight_calculator import WeightCalculator

__all__ = [
    # Main engine
    "CalculationOrchestrator",
    # Component classes
    "TraitNormalizer",
    "StoredTraitStrategy",
    "DerivedTraitStrategy",
    "SkillHierarchyResolver",
    "WeightCalculator",
    "PriorityRanker",
    "PathBuilder",
]
