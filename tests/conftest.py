"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
a small skill catalog, trait records, and in-memory collaborators for the
orchestrator contracts.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from traitpath.core.errors import PersistenceError  # noqa: E402
from traitpath.core.models import (  # noqa: E402
    ConversationRecord,
    DevelopmentStageRule,
    SkillCatalog,
    SkillInfo,
    SkillMapping,
    StoredTraits,
    TraitPattern,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite database, API)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "e2e: End-to-end scenario tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)
        elif "e2e" in str(item.fspath):
            item.add_marker(pytest.mark.e2e)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def sample_catalog_file(project_root):
    """Catalog JSON shipped with the repo."""
    return project_root / "data" / "sample_catalog.json"


# =============================================================================
# Catalog
# =============================================================================


def make_catalog(extra_skills=(), extra_patterns=()):
    """
    Six active skills, two roots, one inactive skill.

    Prerequisite chain: 3 (Persuasive Framing) -> 2 (Clarifying Questions)
    -> 1 (Active Listening). Skill 4 has a stage rule for struggling users.
    """
    skills = [
        SkillInfo(100, "Communication", "communication"),
        SkillInfo(200, "Analytical Thinking", "analytical"),
        SkillInfo(1, "Active Listening", "communication", parent_skill_id=100),
        SkillInfo(2, "Clarifying Questions", "communication", parent_skill_id=100),
        SkillInfo(3, "Persuasive Framing", "communication", parent_skill_id=100),
        SkillInfo(4, "Composure Under Pressure", "self-management"),
        SkillInfo(5, "Structured Argument", "analytical", parent_skill_id=200),
        SkillInfo(6, "Evidence Evaluation", "analytical", parent_skill_id=200),
        SkillInfo(7, "Small Talk", "communication", parent_skill_id=100, is_active=False),
        *extra_skills,
    ]
    patterns = (
        TraitPattern(
            pattern_key="high_stakes",
            trait_type="stakes_level",
            skill_mappings=(
                SkillMapping(4, 0.9, practice_areas=("salary negotiation",)),
                SkillMapping(3, 0.8, development_order=3, prerequisites=(2,)),
                SkillMapping(5, 0.7, role="supporting", development_order=2),
            ),
        ),
        TraitPattern(
            pattern_key="struggling_confidence",
            trait_type="confidence_pattern",
            skill_mappings=(
                SkillMapping(1, 0.6, role="foundation", practice_areas=("one-on-one check-ins",)),
                SkillMapping(2, 0.7, development_order=2, prerequisites=(1,)),
                SkillMapping(4, 0.8),
                SkillMapping(6, 0.5, role="supporting"),
                SkillMapping(7, 0.4, role="supporting"),
            ),
            development_stages=(
                DevelopmentStageRule(
                    skill_id=4,
                    stage_from="struggling",
                    stage_to="developing",
                    readiness_score=0.7,
                    prerequisites=(1,),
                    learning_focus=("slow breathing before answering",),
                ),
            ),
        ),
        *extra_patterns,
    )
    return SkillCatalog(patterns=patterns, skills={s.skill_id: s for s in skills})


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def catalog_factory():
    """Build the sample catalog with extra skills/patterns appended."""
    return make_catalog


@pytest.fixture
def struggling_traits_record():
    """High-stakes, struggling trait record from an onboarding conversation."""
    return {
        "stakes_level": {"value": "high_stakes", "rationale": "Preparing for a promotion panel"},
        "confidence_pattern": {"value": "struggling→developing", "rationale": "Frequent hedging"},
        "interaction_style": {"value": "balanced", "rationale": "Alternates turns evenly"},
        "life_context": {"value": "default", "rationale": ""},
        "growth_motivation": {"value": "default", "rationale": ""},
    }


@pytest.fixture
def test_settings():
    return Settings(database_url="sqlite://", log_level="DEBUG")


# =============================================================================
# In-memory collaborators
# =============================================================================


class FakeCatalogReader:
    def __init__(self, catalog):
        self.catalog = catalog
        self.loads = 0

    def load_catalog(self):
        self.loads += 1
        return self.catalog


class FakeConversationSource:
    def __init__(self, *conversations):
        self.conversations = {c.conversation_id: c for c in conversations}

    def add(self, conversation):
        self.conversations[conversation.conversation_id] = conversation

    def get_conversation(self, conversation_id):
        return self.conversations.get(conversation_id)


class InMemoryCalculationStore:
    """Mirrors the SQL store's append-only history and per-user path document."""

    def __init__(self, fail_on_save=False):
        self.fail_on_save = fail_on_save
        self.results = []
        self.paths = {}

    def latest_traits(self, user_id):
        for result in reversed(self.results):
            if result.user_id == user_id:
                data = result.traits.to_dict()
                data.pop("source")
                return StoredTraits(record=data, source=result.traits.source)
        return None

    def latest_weights(self, user_id):
        for result in reversed(self.results):
            if result.user_id == user_id:
                return list(result.weights)
        return []

    def save_calculation(self, result):
        if self.fail_on_save:
            raise PersistenceError("store unavailable")
        self.results.append(result)
        self.paths[result.user_id] = {
            "user_id": result.user_id,
            "mode": result.mode.value,
            "learning_path": [n.to_dict() for n in result.learning_path],
            "prioritized_skills": [p.to_dict() for p in result.prioritized_skills],
            "learning_focus": list(result.learning_focus),
        }

    def get_learning_path(self, user_id):
        return self.paths.get(user_id)


@pytest.fixture
def onboarding_conversation(struggling_traits_record):
    return ConversationRecord(
        conversation_id="conv-onboarding",
        user_id="user_1",
        scenario_type="onboarding",
        trait_record=struggling_traits_record,
    )


@pytest.fixture
def lesson_conversation():
    return ConversationRecord(
        conversation_id="conv-lesson",
        user_id="user_1",
        scenario_type="lesson",
        skill_ids=(4, 1),
        criteria_results={
            "stayed_calm": {"result": "success", "rationale": "Even tone throughout"},
            "reflected_back": {"result": "failure", "rationale": "Did not paraphrase"},
        },
    )


@pytest.fixture
def catalog_reader(catalog):
    return FakeCatalogReader(catalog)


@pytest.fixture
def conversations(onboarding_conversation, lesson_conversation):
    return FakeConversationSource(onboarding_conversation, lesson_conversation)


@pytest.fixture
def store():
    return InMemoryCalculationStore()


@pytest.fixture
def failing_store():
    return InMemoryCalculationStore(fail_on_save=True)
