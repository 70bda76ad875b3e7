"""
Core Module - Shared domain records, errors and contracts.

Components:
- models: Trait, catalog and calculation records
- errors: Typed error taxonomy
- contracts: Catalog/conversation/store protocols
- log_config: Loguru sink setup
"""

from traitpath.core.errors import (
    ConfigurationError,
    InputMissingError,
    InvalidTraitError,
    NotFoundError,
    PersistenceError,
    ResolutionError,
    TraitPathError,
)
from traitpath.core.models import (
    DEFAULT_STAGE,
    CalculationMode,
    CalculationResult,
    ConversationRecord,
    DevelopmentStage,
    DevelopmentStageRule,
    LearningPathNode,
    PrioritizedSkill,
    PriorityLevel,
    SkillCatalog,
    SkillInfo,
    SkillMapping,
    SkillWeight,
    StakesLevel,
    StoredTraits,
    TraitInfluence,
    TraitName,
    TraitPattern,
    TraitReading,
    TraitSet,
    TraitSource,
    WeightEvidence,
)

__all__ = [
    # Errors
    "TraitPathError",
    "ConfigurationError",
    "InputMissingError",
    "InvalidTraitError",
    "NotFoundError",
    "PersistenceError",
    "ResolutionError",
    # Traits
    "TraitName",
    "TraitReading",
    "TraitSet",
    "TraitSource",
    "StoredTraits",
    "StakesLevel",
    # Catalog
    "SkillInfo",
    "SkillMapping",
    "DevelopmentStageRule",
    "TraitPattern",
    "SkillCatalog",
    # Output
    "DevelopmentStage",
    "DEFAULT_STAGE",
    "TraitInfluence",
    "WeightEvidence",
    "SkillWeight",
    "PrioritizedSkill",
    "PriorityLevel",
    "LearningPathNode",
    # Orchestration
    "CalculationMode",
    "CalculationResult",
    "ConversationRecord",
]
