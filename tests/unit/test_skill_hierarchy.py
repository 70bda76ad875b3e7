"""
Unit tests for SkillHierarchyResolver.
"""

from traitpath.adaptive.skill_hierarchy import (
    ANALYTICAL,
    COMMUNICATION,
    GENERAL,
    SkillHierarchyResolver,
)
from traitpath.core.models import SkillInfo


class CountingLookup:
    def __init__(self, *skills):
        self.skills = {s.skill_id: s for s in skills}
        self.calls = 0

    def __call__(self, skill_id):
        self.calls += 1
        return self.skills.get(skill_id)


class TestAncestorChain:
    def test_root_to_leaf(self, catalog):
        resolver = SkillHierarchyResolver(catalog.get_skill)

        assert resolver.ancestor_chain(1) == ["Communication", "Active Listening"]
        assert resolver.depth(1) == 2
        assert resolver.root_name(1) == "Communication"

    def test_root_skill(self, catalog):
        resolver = SkillHierarchyResolver(catalog.get_skill)
        assert resolver.ancestor_chain(4) == ["Composure Under Pressure"]

    def test_unknown_skill(self, catalog):
        resolver = SkillHierarchyResolver(catalog.get_skill)

        assert resolver.ancestor_chain(404) == []
        assert resolver.depth(404) == 0
        assert resolver.root_name(404) is None

    def test_broken_parent_returns_partial_chain(self):
        lookup = CountingLookup(SkillInfo(1, "Orphan", parent_skill_id=999))
        assert SkillHierarchyResolver(lookup).ancestor_chain(1) == ["Orphan"]

    def test_parent_loop_terminates(self):
        lookup = CountingLookup(
            SkillInfo(1, "A", parent_skill_id=2),
            SkillInfo(2, "B", parent_skill_id=1),
        )
        assert SkillHierarchyResolver(lookup).ancestor_chain(1) == ["B", "A"]

    def test_chain_is_cached(self):
        lookup = CountingLookup(SkillInfo(1, "Leaf", parent_skill_id=2), SkillInfo(2, "Root"))
        resolver = SkillHierarchyResolver(lookup)

        resolver.ancestor_chain(1)
        calls = lookup.calls
        resolver.ancestor_chain(1)
        resolver.depth(1)

        assert lookup.calls == calls


class TestCategory:
    def test_from_root_name(self, catalog):
        resolver = SkillHierarchyResolver(catalog.get_skill)

        assert resolver.category(2) == COMMUNICATION
        assert resolver.category(6) == ANALYTICAL
        assert resolver.category(4) == GENERAL

    def test_falls_back_to_skill_category(self):
        lookup = CountingLookup(SkillInfo(1, "Negotiation", category="Communication"))
        assert SkillHierarchyResolver(lookup).category(1) == COMMUNICATION

    def test_unknown_skill_is_general(self, catalog):
        assert SkillHierarchyResolver(catalog.get_skill).category(404) == GENERAL
