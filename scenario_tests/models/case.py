"""Models for discovered scenario test cases."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

ScenarioBody = Callable[..., Awaitable[None] | None]


@dataclass(frozen=True, kw_only=True)
class TestCase:
    """A single registered scenario, as seen by the runner.

    Traits map a key to its values in declaration order. The body is carried
    along so the executor can run the case, but it is not part of the case
    identity.
    """

    __test__ = False

    display_name: str
    collection: str
    traits: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    skip_reason: str | None = None
    body: ScenarioBody = field(compare=False, repr=False)

    def trait_pairs(self) -> frozenset[tuple[str, str]]:
        """Return every (key, value) pair, case-folded for matching."""
        return frozenset(
            (key.casefold(), value.casefold())
            for key, values in self.traits.items()
            for value in values
        )

    def format_traits(self) -> str:
        """Render traits as ``key=v1, v2`` groups for listing."""
        return " ".join(
            f"{key}={', '.join(values)}" for key, values in self.traits.items()
        )
