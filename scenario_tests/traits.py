"""Trait-based selection of scenario test cases."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Self

from scenario_tests.models.case import TestCase

OFFLINE_TRAIT = ("Category", "Offline")


class TraitParseError(ValueError):
    """Raised when a trait argument is not in ``key=value`` form."""


def parse_trait_arguments(values: Iterable[str]) -> dict[str, frozenset[str]]:
    """Parse ``key=value`` arguments into a key to values mapping.

    Values given for the same key accumulate. Whitespace around key and value
    is ignored.

    Raises:
        TraitParseError: If an argument has no ``=`` or an empty key or value

    """
    traits: dict[str, set[str]] = {}
    for raw in values:
        key, separator, value = raw.partition("=")
        key, value = key.strip(), value.strip()
        if not separator or not key or not value:
            raise TraitParseError(f"Invalid trait '{raw}', expected KEY=VALUE")
        traits.setdefault(key, set()).add(value)
    return {key: frozenset(trait_values) for key, trait_values in traits.items()}


def _merge(
    target: dict[str, frozenset[str]], source: Mapping[str, frozenset[str]]
) -> None:
    for key, values in source.items():
        target[key] = target.get(key, frozenset()) | values


def _casefold_pairs(
    traits: Mapping[str, frozenset[str]],
) -> frozenset[tuple[str, str]]:
    return frozenset(
        (key.casefold(), value.casefold())
        for key, values in traits.items()
        for value in values
    )


@dataclass(frozen=True, kw_only=True)
class TraitFilter:
    """Inclusion and exclusion sets over test case traits.

    A case is selected when the inclusion set is empty or shares at least one
    (key, value) pair with the case, and the exclusion set shares none.
    Keys and values compare case-insensitively.
    """

    included: Mapping[str, frozenset[str]] = field(default_factory=dict)
    excluded: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def from_arguments(
        cls,
        traits: Sequence[str] = (),
        no_traits: Sequence[str] = (),
        *,
        offline_only: bool = False,
    ) -> Self:
        """Build a filter from raw ``--traits``/``--no-traits`` values.

        ``offline_only`` adds ``Category=Offline`` to the inclusion set next to
        any explicitly requested traits.
        """
        included: dict[str, frozenset[str]] = {}
        if offline_only:
            key, value = OFFLINE_TRAIT
            included[key] = frozenset([value])
        _merge(included, parse_trait_arguments(traits))

        return cls(included=included, excluded=parse_trait_arguments(no_traits))

    def matches(self, test_case: TestCase) -> bool:
        """Check whether a test case passes both the inclusion and exclusion axes."""
        pairs = test_case.trait_pairs()

        if pairs & _casefold_pairs(self.excluded):
            return False

        if not self.included:
            return True

        return bool(pairs & _casefold_pairs(self.included))

    def apply(self, test_cases: Iterable[TestCase]) -> list[TestCase]:
        """Return the matching cases, keeping their original order."""
        return [test_case for test_case in test_cases if self.matches(test_case)]
