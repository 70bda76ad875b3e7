"""
Trait Normalizer.

Converts loosely-typed trait observations into a canonical TraitSet.

Two explicit strategies feed it:
- StoredTraitStrategy: an authoritative `{name: {value, rationale}}` record
- DerivedTraitStrategy: degraded heuristic from per-criterion pass/fail results,
  used only when no trait record exists

The orchestrator picks the strategy; the normalizer never infers one from
which fields happen to be empty.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from loguru import logger

from traitpath.core.errors import InvalidTraitError
from traitpath.core.models import (
    StakesLevel,
    TraitName,
    TraitReading,
    TraitSet,
    TraitSource,
)

DEFAULT_TRAIT_VALUES: dict[TraitName, str] = {
    TraitName.STAKES_LEVEL: StakesLevel.MEDIUM.value,
    TraitName.CONFIDENCE_PATTERN: "developing",
    TraitName.INTERACTION_STYLE: "balanced",
    TraitName.LIFE_CONTEXT: "default",
    TraitName.GROWTH_MOTIVATION: "default",
}

# success -> flattering label, failure -> growth label
CONFIDENCE_LABELS = {"success": "confident", "failure": "struggling"}
INTERACTION_LABELS = {"success": "collaborative", "failure": "reserved"}

DERIVED_PREFIX = "Derived from"


def parse_stakes(value: str) -> StakesLevel:
    """Map a free-form stakes value onto StakesLevel."""
    lowered = value.strip().lower().replace("-", "_").replace(" ", "_")
    if "high" in lowered:
        return StakesLevel.HIGH
    if "low" in lowered:
        return StakesLevel.LOW
    if "medium" in lowered or "moderate" in lowered:
        return StakesLevel.MEDIUM
    raise InvalidTraitError(
        f"Unrecognised stakes level: {value!r}",
        details={"trait": TraitName.STAKES_LEVEL.value, "value": value},
    )


class TraitNormalizer:
    """Build a TraitSet with every dimension populated."""

    def normalize(
        self,
        raw: Mapping[str, Any],
        source: TraitSource = TraitSource.STORED,
    ) -> TraitSet:
        """
        Normalise a raw trait record.

        Args:
            raw: Mapping of trait name to either `{value, rationale}` or a bare string
            source: Provenance recorded on the TraitSet

        Returns:
            TraitSet with defaults for absent dimensions
        """
        known = {name.value for name in TraitName}
        unknown = sorted(k for k in raw if k not in known)
        if unknown:
            logger.debug(f"Ignoring unrecognised trait keys: {unknown}")

        readings = {name: self._reading(name, raw.get(name.value)) for name in TraitName}
        stakes = readings[TraitName.STAKES_LEVEL]

        return TraitSet(
            stakes_level=parse_stakes(stakes.value),
            stakes_rationale=stakes.rationale,
            stakes_defaulted=stakes.defaulted,
            confidence_pattern=readings[TraitName.CONFIDENCE_PATTERN],
            interaction_style=readings[TraitName.INTERACTION_STYLE],
            life_context=readings[TraitName.LIFE_CONTEXT],
            growth_motivation=readings[TraitName.GROWTH_MOTIVATION],
            source=source,
        )

    def _reading(self, name: TraitName, entry: Any) -> TraitReading:
        if entry is None:
            return TraitReading(value=DEFAULT_TRAIT_VALUES[name], defaulted=True)

        if isinstance(entry, str):
            value, rationale = entry, ""
        elif isinstance(entry, Mapping):
            value = entry.get("value")
            rationale = entry.get("rationale") or ""
            # Round-tripped TraitSets keep their defaulted dimensions defaulted
            if value is None or entry.get("defaulted") is True:
                return TraitReading(
                    value=DEFAULT_TRAIT_VALUES[name], rationale=str(rationale), defaulted=True
                )
            if not isinstance(value, str):
                raise InvalidTraitError(
                    f"Trait {name.value} has non-string value {value!r}",
                    details={"trait": name.value},
                )
        else:
            raise InvalidTraitError(
                f"Trait {name.value} must be a string or a {{value, rationale}} mapping, "
                f"got {type(entry).__name__}",
                details={"trait": name.value},
            )

        value = value.strip()
        if not value:
            return TraitReading(value=DEFAULT_TRAIT_VALUES[name], rationale=str(rationale), defaulted=True)
        return TraitReading(value=value.lower(), rationale=str(rationale))


# =============================================================================
# Strategies
# =============================================================================


class TraitStrategy(Protocol):
    """Produces a TraitSet, or None when its input is unavailable."""

    source: TraitSource

    def resolve(self) -> TraitSet | None: ...


class StoredTraitStrategy:
    """Use an authoritative trait record as-is."""

    def __init__(
        self,
        record: Mapping[str, Any] | None,
        normalizer: TraitNormalizer | None = None,
        source: TraitSource = TraitSource.STORED,
    ):
        self._record = record
        self._normalizer = normalizer or TraitNormalizer()
        self.source = source

    def resolve(self) -> TraitSet | None:
        if not self._record:
            return None
        return self._normalizer.normalize(self._record, source=self.source)


class DerivedTraitStrategy:
    """
    Infer traits from per-criterion evaluation results.

    Stakes come from the failure tally; confidence and interaction style come
    from designated criterion positions.
    """

    source = TraitSource.DERIVED

    def __init__(
        self,
        criteria_results: Mapping[str, Mapping[str, Any]] | None,
        normalizer: TraitNormalizer | None = None,
        confidence_index: int = 0,
        interaction_index: int = 1,
        high_stakes_failures: int = 3,
    ):
        self._criteria = dict(criteria_results or {})
        self._normalizer = normalizer or TraitNormalizer()
        self._confidence_index = confidence_index
        self._interaction_index = interaction_index
        self._high_stakes_failures = high_stakes_failures

    def resolve(self) -> TraitSet | None:
        if not self._criteria:
            return None
        return self._normalizer.normalize(self.derive_record(), source=self.source)

    def derive_record(self) -> dict[str, dict[str, str]]:
        """Build the raw trait record from criterion outcomes."""
        outcomes = [
            (key, _outcome(result), str(result.get("rationale") or ""))
            for key, result in self._criteria.items()
        ]
        failures = sum(1 for _, outcome, _ in outcomes if outcome == "failure")

        record: dict[str, dict[str, str]] = {
            TraitName.STAKES_LEVEL.value: {
                "value": self.stakes_for_failures(failures).value,
                "rationale": f"{DERIVED_PREFIX} {len(outcomes)} evaluation criteria ({failures} failed)",
            }
        }

        for name, index, labels in (
            (TraitName.CONFIDENCE_PATTERN, self._confidence_index, CONFIDENCE_LABELS),
            (TraitName.INTERACTION_STYLE, self._interaction_index, INTERACTION_LABELS),
        ):
            reading = _criterion_reading(outcomes, index, labels)
            if reading:
                record[name.value] = reading

        return record

    def stakes_for_failures(self, failures: int) -> StakesLevel:
        if failures >= self._high_stakes_failures:
            return StakesLevel.HIGH
        if failures > 0:
            return StakesLevel.MEDIUM
        return StakesLevel.LOW


def _outcome(result: Mapping[str, Any]) -> str:
    value = str(result.get("result", "")).strip().lower()
    return "success" if value == "success" else "failure"


def _criterion_reading(
    outcomes: Sequence[tuple[str, str, str]],
    index: int,
    labels: Mapping[str, str],
) -> dict[str, str] | None:
    if index >= len(outcomes):
        return None
    key, outcome, rationale = outcomes[index]
    note = f"{DERIVED_PREFIX} criterion '{key}' ({outcome})"
    if rationale:
        note = f"{note}: {rationale}"
    return {"value": labels[outcome], "rationale": note}


def resolve_traits(strategies: Sequence[TraitStrategy]) -> TraitSet | None:
    """Return the first TraitSet produced by the given strategies, in order."""
    for strategy in strategies:
        traits = strategy.resolve()
        if traits is not None:
            logger.debug(f"Traits resolved via {type(strategy).__name__} ({strategy.source.value})")
            return traits
    return None
