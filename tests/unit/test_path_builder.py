"""
Unit tests for PathBuilder: prerequisite ordering, cycle and dangling
reference handling, bounding, and per-node details.
"""

from functools import partial

import pytest

from traitpath.adaptive.path_builder import PathBuilder
from traitpath.adaptive.trait_normalizer import TraitNormalizer
from traitpath.adaptive.weight_calculator import WeightCalculator
from traitpath.core.errors import ResolutionError
from traitpath.core.models import (
    DEFAULT_STAGE,
    DevelopmentStage,
    DevelopmentStageRule,
    PrioritizedSkill,
    PriorityLevel,
    SkillInfo,
    SkillMapping,
    TraitPattern,
)

STRUGGLING = DevelopmentStage("struggling", "developing", 0.85)


def prioritized(skill_id, score=0.5, stage=DEFAULT_STAGE, prerequisites=()):
    return PrioritizedSkill(
        skill_id=skill_id,
        priority_score=score,
        development_stage=stage,
        prerequisites=prerequisites,
    )


def skill_ids(path):
    return [node.skill_id for node in path]


class TestOrdering:
    def test_three_level_chain(self, catalog):
        path = PathBuilder(catalog).build([prioritized(3, prerequisites=(2,))])
        assert skill_ids(path) == [1, 2, 3]

    def test_required_skills_precede_dependents(self, catalog):
        ranked = [
            prioritized(3, 0.9, prerequisites=(2,)),
            prioritized(4, 0.8, prerequisites=(1,)),
            prioritized(2, 0.7, prerequisites=(1,)),
        ]
        path = PathBuilder(catalog).build(ranked)

        seen = set()
        for node in path:
            assert set(node.required_skills) <= seen
            seen.add(node.skill_id)

    def test_no_duplicate_nodes(self, catalog):
        ranked = [
            prioritized(2, 0.9, prerequisites=(1,)),
            prioritized(1, 0.8),
            prioritized(3, 0.7, prerequisites=(2,)),
        ]
        path = PathBuilder(catalog).build(ranked)

        assert skill_ids(path) == [1, 2, 3]

    def test_unranked_prerequisite_gets_defaults(self, catalog):
        path = PathBuilder(catalog).build([prioritized(2, 0.9, prerequisites=(1,))])
        first = path[0]

        assert first.skill_id == 1
        assert first.priority_level is PriorityLevel.LOW

    def test_empty_ranking(self, catalog):
        assert PathBuilder(catalog).build([]) == []


class TestInvalidGraphs:
    def test_cycle_fails_loudly(self, catalog_factory):
        loop = TraitPattern(
            "loop", "confidence_pattern", skill_mappings=(SkillMapping(1, 0.5, prerequisites=(3,)),)
        )
        catalog = catalog_factory(extra_patterns=(loop,))

        with pytest.raises(ResolutionError) as exc:
            PathBuilder(catalog).build([prioritized(3, prerequisites=(2,))])

        assert "cycle" in exc.value.message.lower()
        assert set(exc.value.details["cycle"]) == {1, 2, 3}

    def test_self_reference_is_a_cycle(self, catalog):
        with pytest.raises(ResolutionError):
            PathBuilder(catalog).build([prioritized(5, prerequisites=(5,))])

    def test_unknown_prerequisite_fails(self, catalog):
        with pytest.raises(ResolutionError) as exc:
            PathBuilder(catalog).build([prioritized(1, prerequisites=(999,))])
        assert exc.value.details == {"skill_id": 1, "prerequisite": 999}

    def test_inactive_prerequisite_dropped(self, catalog):
        path = PathBuilder(catalog).build([prioritized(1, prerequisites=(7,))])

        assert skill_ids(path) == [1]
        assert path[0].required_skills == ()


class TestUnweightedPrerequisites:
    """Prerequisites with no weight of their own still follow matched stage rules."""

    @pytest.fixture
    def reflection_catalog(self, catalog_factory):
        reflection = TraitPattern(
            "reflection",
            "confidence_pattern",
            skill_mappings=(SkillMapping(6, 0.5, prerequisites=(8,)),),
            development_stages=(
                DevelopmentStageRule(
                    skill_id=8,
                    stage_from="struggling",
                    stage_to="developing",
                    readiness_score=0.5,
                    prerequisites=(5,),
                ),
            ),
        )
        return catalog_factory(
            extra_skills=(SkillInfo(8, "Pause and Reflect", "self-management"),),
            extra_patterns=(reflection,),
        )

    def test_stage_rule_prerequisites_followed(self, reflection_catalog):
        calculator = WeightCalculator(reflection_catalog)
        struggling = TraitNormalizer().normalize({"confidence_pattern": "struggling"})
        builder = PathBuilder(
            reflection_catalog,
            prerequisites_of=partial(calculator.prerequisites_for, traits=struggling),
        )

        path = builder.build([prioritized(6, prerequisites=(8,))])

        assert skill_ids(path) == [5, 8, 6]
        assert path[1].required_skills == (5,)

    def test_unmatched_stage_rule_ignored(self, reflection_catalog):
        calculator = WeightCalculator(reflection_catalog)
        confident = TraitNormalizer().normalize({"confidence_pattern": "confident"})
        builder = PathBuilder(
            reflection_catalog,
            prerequisites_of=partial(calculator.prerequisites_for, traits=confident),
        )

        assert skill_ids(builder.build([prioritized(6, prerequisites=(8,))])) == [8, 6]


class TestInactiveExclusion:
    def test_inactive_ranked_skill_never_emitted(self, catalog):
        path = PathBuilder(catalog).build([prioritized(7, 2.0), prioritized(4, 0.5)])
        assert skill_ids(path) == [4]


class TestBounding:
    def test_at_most_max_nodes(self, catalog):
        ranked = [prioritized(i, 1.0 - i / 10) for i in (1, 2, 4, 5, 6)] + [
            prioritized(3, 0.1, prerequisites=(2,))
        ]
        path = PathBuilder(catalog, max_nodes=3).build(ranked)

        assert len(path) == 3

    def test_group_that_does_not_fit_is_skipped(self, catalog):
        ranked = [
            prioritized(3, 0.9, prerequisites=(2,)),
            prioritized(4, 0.8),
            prioritized(5, 0.7),
        ]
        path = PathBuilder(catalog, max_nodes=2).build(ranked)

        assert skill_ids(path) == [4, 5]


class TestNodeDetails:
    def test_critical_struggling_skill(self, catalog):
        (node,) = PathBuilder(catalog).build([prioritized(4, 1.2, STRUGGLING)])

        assert node.priority_level is PriorityLevel.CRITICAL
        assert node.estimated_duration_minutes == 90

    def test_deep_hierarchy_adds_time(self, catalog_factory):
        catalog = catalog_factory(
            extra_skills=(
                SkillInfo(10, "Framing Openers", "communication", parent_skill_id=3),
                SkillInfo(11, "Hook Questions", "communication", parent_skill_id=10),
            )
        )
        (node,) = PathBuilder(catalog).build([prioritized(11, 1.2, STRUGGLING)])

        assert node.estimated_duration_minutes == 105

    def test_communication_activities(self, catalog):
        (node,) = PathBuilder(catalog).build([prioritized(1, 0.5)])

        assert node.learning_activities[0] == "Review worked examples of Active Listening before practising"
        assert "Role-play a Active Listening conversation with your AI coach" in node.learning_activities

    def test_analytical_activities(self, catalog):
        (node,) = PathBuilder(catalog).build([prioritized(5, 0.5, DevelopmentStage("developing", "mastering", 0.7))])

        assert node.learning_activities == (
            "Break down a recent conversation through the lens of Structured Argument",
            "Summarise the key points of a discussion using Structured Argument",
        )

    def test_general_activities_with_intensive_drill(self, catalog):
        (node,) = PathBuilder(catalog).build([prioritized(4, 0.9, DevelopmentStage("developing", "mastering", 0.7))])

        assert node.learning_activities[0] == "Complete a guided Composure Under Pressure practice scenario"
        assert node.learning_activities[-1] == "Schedule a daily ten-minute Composure Under Pressure drill"

    def test_stretch_activity_uses_root_name(self, catalog):
        (node,) = PathBuilder(catalog).build([prioritized(1, 0.5, DevelopmentStage("developing", "mastering", 0.9))])

        assert node.learning_activities[-1] == (
            "Take on a harder Communication scenario that stretches your Active Listening"
        )

    @pytest.mark.parametrize(
        "score,readiness,depth,minutes",
        [
            (1.2, 0.85, 1, 90),
            (1.2, 0.95, 1, 75),
            (0.9, 0.5, 2, 75),
            (0.5, 0.9, 2, 30),
            (0.5, 0.5, 2, 60),
            (0.8, 0.9, 2, 60),
            (0.5, 0.5, 4, 75),
            (1.2, 0.85, 4, 105),
        ],
    )
    def test_estimate_duration(self, score, readiness, depth, minutes):
        assert PathBuilder.estimate_duration(score, readiness, depth) == minutes

    @pytest.mark.parametrize(
        "score,current,level",
        [
            (1.2, "struggling", PriorityLevel.CRITICAL),
            (0.9, "struggling", PriorityLevel.HIGH),
            (0.8, "struggling", PriorityLevel.MEDIUM),
            (0.5, "struggling", PriorityLevel.LOW),
            (1.2, "developing", PriorityLevel.HIGH),
            (0.88, "developing", PriorityLevel.MEDIUM),
            (0.7, "developing", PriorityLevel.LOW),
        ],
    )
    def test_priority_level(self, score, current, level):
        stage = DevelopmentStage(current, "mastering", 0.5)
        assert PathBuilder.priority_level(score, stage) is level
