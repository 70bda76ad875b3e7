"""
Learning Path Builder.

Turns ranked skills into an ordered, bounded list of LearningPathNodes.

Resolution:
1. Build the full prerequisite graph (skill_id -> node) for every ranked skill
   and everything it transitively requires
2. Reject cycles and unknown prerequisites with ResolutionError
3. Walk the ranking; add each skill together with its unplaced prerequisites
   (iterative post-order) when the whole group fits within the node bound

Inactive prerequisites are dropped from the graph, never emitted.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from traitpath.adaptive.skill_hierarchy import (
    ANALYTICAL,
    COMMUNICATION,
    GENERAL,
    SkillHierarchyResolver,
)
from traitpath.core.errors import ResolutionError
from traitpath.core.models import (
    DEFAULT_STAGE,
    DevelopmentStage,
    LearningPathNode,
    PrioritizedSkill,
    PriorityLevel,
    SkillCatalog,
)

BASE_DURATION_MINUTES = 60
DEEP_HIERARCHY_DEPTH = 3
DEEP_HIERARCHY_BONUS_MINUTES = 15

ACTIVITY_TEMPLATES: dict[str, tuple[str, ...]] = {
    COMMUNICATION: (
        "Role-play a {skill} conversation with your AI coach",
        "Record a two-minute {skill} practice and review the playback",
    ),
    ANALYTICAL: (
        "Break down a recent conversation through the lens of {skill}",
        "Summarise the key points of a discussion using {skill}",
    ),
    GENERAL: (
        "Complete a guided {skill} practice scenario",
        "Reflect on one situation this week where {skill} mattered",
    ),
}
FOUNDATION_ACTIVITY = "Review worked examples of {skill} before practising"
INTENSIVE_ACTIVITY = "Schedule a daily ten-minute {skill} drill"
STRETCH_ACTIVITY = "Take on a harder {root} scenario that stretches your {skill}"


@dataclass(frozen=True)
class _SkillNode:
    skill_id: int
    prerequisites: tuple[int, ...]
    priority_score: float
    stage: DevelopmentStage


class PathBuilder:
    """Resolve prerequisites into a valid, bounded learning order."""

    def __init__(
        self,
        catalog: SkillCatalog,
        hierarchy: SkillHierarchyResolver | None = None,
        max_nodes: int = 5,
        prerequisites_of: Callable[[int], Sequence[int]] | None = None,
    ):
        self._catalog = catalog
        # Lookup for prerequisites that carry no weight of their own
        self._prerequisites_of = prerequisites_of or catalog.prerequisites_for
        self._hierarchy = hierarchy or SkillHierarchyResolver(catalog.get_skill)
        self._max_nodes = max_nodes

    def build(self, ranked: Sequence[PrioritizedSkill]) -> list[LearningPathNode]:
        """
        Generate the learning path for a ranking.

        Args:
            ranked: PrioritizedSkills, highest priority first

        Returns:
            At most ``max_nodes`` nodes; every required skill precedes its dependents

        Raises:
            ResolutionError: prerequisite cycle or unknown prerequisite id
        """
        active = [p for p in ranked if self._catalog.is_active(p.skill_id)]
        graph = self._build_graph(active)
        self._check_acyclic(graph)

        placed: list[int] = []
        placed_set: set[int] = set()
        for prioritized in active:
            if len(placed) >= self._max_nodes:
                break
            group = self._unplaced_closure(prioritized.skill_id, graph, placed_set)
            if not group:
                continue
            if len(placed) + len(group) > self._max_nodes:
                logger.debug(
                    f"Skipping skill {prioritized.skill_id}: needs {len(group)} nodes, "
                    f"{self._max_nodes - len(placed)} left"
                )
                continue
            placed.extend(group)
            placed_set.update(group)

        return [self._make_node(graph[skill_id]) for skill_id in placed]

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def _build_graph(self, ranked: Sequence[PrioritizedSkill]) -> dict[int, _SkillNode]:
        by_id = {p.skill_id: p for p in ranked}
        graph: dict[int, _SkillNode] = {}
        pending = [p.skill_id for p in reversed(ranked)]

        while pending:
            skill_id = pending.pop()
            if skill_id in graph:
                continue

            prioritized = by_id.get(skill_id)
            declared = (
                prioritized.prerequisites
                if prioritized is not None
                else self._prerequisites_of(skill_id)
            )

            kept = []
            for prereq in declared:
                if not self._catalog.is_known(prereq):
                    raise ResolutionError(
                        f"Skill {skill_id} requires unknown skill {prereq}",
                        details={"skill_id": skill_id, "prerequisite": prereq},
                    )
                if not self._catalog.is_active(prereq):
                    logger.info(f"Dropping inactive prerequisite {prereq} of skill {skill_id}")
                    continue
                if prereq not in kept:
                    kept.append(prereq)
                    pending.append(prereq)

            graph[skill_id] = _SkillNode(
                skill_id=skill_id,
                prerequisites=tuple(kept),
                priority_score=prioritized.priority_score if prioritized else 0.0,
                stage=prioritized.development_stage if prioritized else DEFAULT_STAGE,
            )
        return graph

    @staticmethod
    def _check_acyclic(graph: dict[int, _SkillNode]) -> None:
        """Iterative DFS with an in-progress marker; raises on the first cycle."""
        in_progress, done = 1, 2
        state: dict[int, int] = {}

        for root in graph:
            if state.get(root) == done:
                continue
            state[root] = in_progress
            trail = [root]
            stack = [(root, iter(graph[root].prerequisites))]

            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    state[node] = done
                    stack.pop()
                    trail.pop()
                    continue
                child_state = state.get(child)
                if child_state == in_progress:
                    cycle = trail[trail.index(child):] + [child]
                    raise ResolutionError(
                        "Prerequisite cycle: " + " -> ".join(str(s) for s in cycle),
                        details={"cycle": cycle},
                    )
                if child_state is None:
                    state[child] = in_progress
                    trail.append(child)
                    stack.append((child, iter(graph[child].prerequisites)))

    @staticmethod
    def _unplaced_closure(
        skill_id: int, graph: dict[int, _SkillNode], placed: set[int]
    ) -> list[int]:
        """Post-order of the skill and its not-yet-placed prerequisites."""
        if skill_id in placed:
            return []
        order: list[int] = []
        visited = set(placed)
        visited.add(skill_id)
        stack = [(skill_id, iter(graph[skill_id].prerequisites))]

        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                order.append(node)
                stack.pop()
            elif child not in visited:
                visited.add(child)
                stack.append((child, iter(graph[child].prerequisites)))
        return order

    # ------------------------------------------------------------------
    # Node details
    # ------------------------------------------------------------------

    def _make_node(self, node: _SkillNode) -> LearningPathNode:
        return LearningPathNode(
            skill_id=node.skill_id,
            required_skills=node.prerequisites,
            learning_activities=self.learning_activities(
                node.skill_id, node.priority_score, node.stage.readiness
            ),
            estimated_duration_minutes=self.estimate_duration(
                node.priority_score, node.stage.readiness, self._hierarchy.depth(node.skill_id)
            ),
            priority_level=self.priority_level(node.priority_score, node.stage),
        )

    def learning_activities(
        self, skill_id: int, priority_score: float, readiness: float
    ) -> tuple[str, ...]:
        skill = self._catalog.get_skill(skill_id)
        name = skill.name if skill else f"Skill {skill_id}"
        root = self._hierarchy.root_name(skill_id) or name
        category = self._hierarchy.category(skill_id)

        activities = [t.format(skill=name) for t in ACTIVITY_TEMPLATES[category]]
        if readiness < 0.6:
            activities.insert(0, FOUNDATION_ACTIVITY.format(skill=name))
        if priority_score > 0.85:
            activities.append(INTENSIVE_ACTIVITY.format(skill=name))
        if readiness > 0.85:
            activities.append(STRETCH_ACTIVITY.format(root=root, skill=name))
        return tuple(activities)

    @staticmethod
    def estimate_duration(priority_score: float, readiness: float, depth: int) -> int:
        if priority_score > 1.0 and readiness < 0.9:
            minutes = 90
        elif priority_score > 0.85:
            minutes = 75
        elif priority_score < 0.7 and readiness > 0.85:
            minutes = 30
        else:
            minutes = BASE_DURATION_MINUTES
        if depth > DEEP_HIERARCHY_DEPTH:
            minutes += DEEP_HIERARCHY_BONUS_MINUTES
        return minutes

    @staticmethod
    def priority_level(priority_score: float, stage: DevelopmentStage) -> PriorityLevel:
        if stage.is_struggling:
            if priority_score > 1.0:
                return PriorityLevel.CRITICAL
            if priority_score > 0.85:
                return PriorityLevel.HIGH
        elif priority_score > 0.9:
            return PriorityLevel.HIGH
        if priority_score > 0.7:
            return PriorityLevel.MEDIUM
        return PriorityLevel.LOW
