"""
Skill Hierarchy Resolver.

Walks a skill's parent chain up to its root. The chain picks the activity
phrasing category and feeds the duration estimate.
"""
from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from traitpath.core.models import SkillInfo

SkillLookup = Callable[[int], SkillInfo | None]

COMMUNICATION = "communication"
ANALYTICAL = "analytical"
GENERAL = "general"


class SkillHierarchyResolver:
    """Resolve ancestor chains through an external skill lookup."""

    def __init__(self, lookup: SkillLookup):
        self._lookup = lookup
        self._cache: dict[int, tuple[str, ...]] = {}

    def ancestor_chain(self, skill_id: int) -> list[str]:
        """
        Names from root to leaf, the skill itself last.

        A missing parent or a loop in the parent chain ends the walk and
        returns what was collected so far.
        """
        if skill_id in self._cache:
            return list(self._cache[skill_id])

        names: list[str] = []
        seen: set[int] = set()
        current: int | None = skill_id

        while current is not None:
            if current in seen:
                logger.warning(f"Parent loop at skill {current} while resolving {skill_id}")
                break
            seen.add(current)

            skill = self._lookup(current)
            if skill is None:
                if current != skill_id:
                    logger.debug(f"Broken parent reference {current} under skill {skill_id}")
                break
            names.append(skill.name)
            current = skill.parent_skill_id

        chain = tuple(reversed(names))
        self._cache[skill_id] = chain
        return list(chain)

    def depth(self, skill_id: int) -> int:
        return len(self.ancestor_chain(skill_id))

    def root_name(self, skill_id: int) -> str | None:
        chain = self.ancestor_chain(skill_id)
        return chain[0] if chain else None

    def category(self, skill_id: int) -> str:
        """Activity phrasing category from the top-level ancestor name."""
        candidates = [self.root_name(skill_id)]
        skill = self._lookup(skill_id)
        if skill is not None:
            candidates.append(skill.category)

        for name in candidates:
            if not name:
                continue
            lowered = name.lower()
            if "communicat" in lowered:
                return COMMUNICATION
            if "analy" in lowered:
                return ANALYTICAL
        return GENERAL
