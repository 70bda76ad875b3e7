# SQLAlchemy models
from .base import Base
from .catalog import (
    Skill,
    TraitDevelopmentStage,
    TraitPatternRow,
    TraitSkillMapping,
)
from .user import (
    UserConversation,
    UserLearningPath,
    UserSkillWeight,
    UserTraits,
)

__all__ = [
    # Base
    "Base",
    # Catalog
    "Skill",
    "TraitPatternRow",
    "TraitSkillMapping",
    "TraitDevelopmentStage",
    # Per-user
    "UserConversation",
    "UserTraits",
    "UserSkillWeight",
    "UserLearningPath",
]
