"""
Calculation Orchestrator.

Top-level entry point. Picks a mode from the triggering conversation and runs
the pipeline end to end:

    initial_calculation: catalog -> traits -> aggregated weights -> rank -> path -> persist
    practice_update:     catalog -> traits -> per-pattern weights (+ lesson feedback)
                         -> rank -> path -> persist

Nothing is written until every phase has succeeded, so a failed run leaves
the user's previous learning path untouched.
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from functools import partial
from typing import Any

from loguru import logger

from config import Settings, get_settings
from traitpath.adaptive.path_builder import PathBuilder
from traitpath.adaptive.priority_ranker import PriorityRanker
from traitpath.adaptive.skill_hierarchy import SkillHierarchyResolver
from traitpath.adaptive.trait_normalizer import (
    DerivedTraitStrategy,
    StoredTraitStrategy,
    TraitNormalizer,
    TraitStrategy,
    resolve_traits,
)
from traitpath.adaptive.weight_calculator import WeightCalculator
from traitpath.core.contracts import CalculationStore, CatalogReader, ConversationSource
from traitpath.core.errors import InputMissingError, NotFoundError, TraitPathError
from traitpath.core.models import (
    CalculationMode,
    CalculationResult,
    ConversationRecord,
    SkillCatalog,
    SkillWeight,
    TraitSet,
    TraitSource,
)


@contextmanager
def _phase(name: str) -> Iterator[None]:
    """Tag engine errors raised inside the block with the phase name."""
    try:
        yield
    except TraitPathError as exc:
        if exc.phase is None:
            exc.phase = name
        logger.debug(f"Phase '{name}' failed: {type(exc).__name__}: {exc.message}")
        raise


class CalculationOrchestrator:
    """
    Coordinate one trait-to-learning-path calculation.

    Collaborators are injected; the orchestrator holds no global state and
    may be constructed per request.
    """

    def __init__(
        self,
        catalog: CatalogReader,
        store: CalculationStore,
        conversations: ConversationSource,
        settings: Settings | None = None,
        normalizer: TraitNormalizer | None = None,
    ):
        self._catalog_reader = catalog
        self._store = store
        self._conversations = conversations
        self._settings = settings or get_settings()
        self._normalizer = normalizer or TraitNormalizer()
        self._ranker = PriorityRanker()

    @staticmethod
    def select_mode(conversation: ConversationRecord) -> CalculationMode:
        return CalculationMode.INITIAL if conversation.is_onboarding else CalculationMode.PRACTICE

    def run(
        self,
        user_id: str,
        conversation_id: str,
        override_traits: Mapping[str, Any] | None = None,
    ) -> CalculationResult:
        """
        Run a calculation for a user's conversation.

        Args:
            user_id: User identifier
            conversation_id: Triggering conversation
            override_traits: Optional trait record taking precedence over stored data

        Returns:
            CalculationResult (already persisted)

        Raises:
            InputMissingError: no trait or evaluation data yet (analysis pending)
            TraitPathError: any other failure, tagged with the failing phase
        """
        with _phase("load_conversation"):
            conversation = self._conversations.get_conversation(conversation_id)
            if conversation is None or conversation.user_id != user_id:
                raise NotFoundError(
                    f"Conversation {conversation_id} not found for user {user_id}",
                    details={"conversation_id": conversation_id},
                )

        mode = self.select_mode(conversation)
        logger.info(f"Running {mode.value} for user {user_id} (conversation {conversation_id})")

        with _phase("load_catalog"):
            catalog = self._catalog_reader.load_catalog()
            calculator = WeightCalculator(catalog)

        with _phase("resolve_traits"):
            traits = resolve_traits(self._trait_strategies(mode, user_id, conversation, override_traits))
            if traits is None:
                raise InputMissingError(
                    "Conversation analysis is pending, traits not available yet",
                    details={"conversation_id": conversation_id},
                )
            if traits.source is TraitSource.DERIVED:
                logger.warning(f"Using derived traits for user {user_id}; no trait record available")

        with _phase("weighting"):
            weights = self._calculate_weights(mode, calculator, traits, user_id, conversation)

        with _phase("ranking"):
            ranked = self._ranker.rank(weights)
            focus = self._ranker.learning_focus(ranked, self._settings.learning_focus_size)

        with _phase("path_building"):
            builder = PathBuilder(
                catalog,
                SkillHierarchyResolver(catalog.get_skill),
                max_nodes=self._settings.max_path_nodes,
                prerequisites_of=partial(calculator.prerequisites_for, traits=traits),
            )
            path = builder.build(ranked)

        result = CalculationResult(
            user_id=user_id,
            conversation_id=conversation_id,
            mode=mode,
            traits=traits,
            weights=tuple(weights),
            prioritized_skills=tuple(ranked),
            learning_focus=tuple(p.skill_id for p in focus),
            learning_path=tuple(path),
        )

        with _phase("persistence"):
            self._store.save_calculation(result)

        logger.info(
            f"{mode.value} complete for {user_id}: {len(weights)} weights, "
            f"{len(path)} path nodes"
        )
        return result

    def _trait_strategies(
        self,
        mode: CalculationMode,
        user_id: str,
        conversation: ConversationRecord,
        override_traits: Mapping[str, Any] | None,
    ) -> list[TraitStrategy]:
        strategies: list[TraitStrategy] = []
        if override_traits:
            strategies.append(
                StoredTraitStrategy(override_traits, self._normalizer, source=TraitSource.OVERRIDE)
            )

        if mode is CalculationMode.INITIAL:
            strategies.append(StoredTraitStrategy(conversation.trait_record, self._normalizer))
        else:
            stored = self._store.latest_traits(user_id)
            if stored is not None:
                strategies.append(
                    StoredTraitStrategy(stored.record, self._normalizer, source=stored.source)
                )

        strategies.append(
            DerivedTraitStrategy(
                conversation.criteria_results,
                self._normalizer,
                confidence_index=self._settings.derived_confidence_criterion_index,
                interaction_index=self._settings.derived_interaction_criterion_index,
                high_stakes_failures=self._settings.high_stakes_failure_threshold,
            )
        )
        return strategies

    def _calculate_weights(
        self,
        mode: CalculationMode,
        calculator: WeightCalculator,
        traits: TraitSet,
        user_id: str,
        conversation: ConversationRecord,
    ) -> list[SkillWeight]:
        if mode is CalculationMode.INITIAL:
            return calculator.calculate_initial(traits)

        previous = self._store.latest_weights(user_id)
        weights = calculator.calculate_update(traits, previous)
        if conversation.skill_ids and conversation.criteria_results:
            weights = calculator.apply_practice_results(
                weights, conversation.skill_ids, conversation.criteria_results
            )
        return weights


def build_catalog_snapshot(reader: CatalogReader) -> SkillCatalog:
    """Load and validate a catalog outside a calculation (used by the CLI)."""
    catalog = reader.load_catalog()
    WeightCalculator(catalog)
    return catalog
