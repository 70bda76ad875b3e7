"""
Unit tests for core records and the error taxonomy.
"""

import pytest

from traitpath.core.errors import (
    ConfigurationError,
    InputMissingError,
    InvalidTraitError,
    NotFoundError,
    PersistenceError,
    ResolutionError,
)
from traitpath.core.models import (
    DevelopmentStage,
    DevelopmentStageRule,
    SkillWeight,
    TraitInfluence,
    TraitName,
    TraitSource,
    WeightEvidence,
)


class TestErrors:
    @pytest.mark.parametrize(
        "error_cls,status",
        [
            (ConfigurationError, 500),
            (InputMissingError, 202),
            (InvalidTraitError, 422),
            (NotFoundError, 404),
            (ResolutionError, 422),
            (PersistenceError, 502),
        ],
    )
    def test_status_codes(self, error_cls, status):
        assert error_cls("x").status_code == status

    def test_to_dict(self):
        error = ResolutionError("Prerequisite cycle: 1 -> 2 -> 1", phase="path_building", details={"cycle": [1, 2, 1]})

        assert error.to_dict() == {
            "error": "Prerequisite cycle: 1 -> 2 -> 1",
            "details": {"cycle": [1, 2, 1], "type": "ResolutionError", "phase": "path_building"},
        }

    def test_to_dict_without_phase(self):
        assert "phase" not in ConfigurationError("empty").to_dict()["details"]


class TestRecords:
    def test_stage_rule_readiness_range(self):
        with pytest.raises(ConfigurationError):
            DevelopmentStageRule(1, "struggling", "developing", readiness_score=1.2)

    def test_skill_weight_restores_from_stored_row(self):
        weight = SkillWeight(
            skill_id=4,
            base_weight=0.9,
            final_weight=0.72,
            development_stage=DevelopmentStage("developing", "mastering", 0.8),
            trait_influences=(TraitInfluence(TraitName.STAKES_LEVEL, "high_stakes", 0.8, "modifier"),),
            evidence=WeightEvidence(
                importance_factors=({"source": "pattern:high_stakes", "value": 0.9, "role": "primary"},),
                practice_areas=("salary negotiation",),
                trait_source=TraitSource.DERIVED,
            ),
            prerequisites=(1,),
        )

        assert SkillWeight.from_dict(weight.to_dict()) == weight

    def test_stage_defaults_for_missing_fields(self):
        assert DevelopmentStage.from_dict({}) == DevelopmentStage("developing", "mastering", 0.5)
