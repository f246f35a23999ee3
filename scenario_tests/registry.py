"""Explicit registration of scenario test bodies.

A test artifact is any module exposing a :class:`ScenarioRegistry`. Bodies are
registered with the :meth:`ScenarioRegistry.scenario` decorator together with
their traits; the registry is the manifest the discoverer reads, so discovery
never has to call or inspect a body.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from types import MappingProxyType

from scenario_tests.models.case import ScenarioBody, TestCase

log = logging.getLogger(__name__)

type TraitDeclaration = Mapping[str, str | Sequence[str]]
type CleanupHook = Callable[[], Awaitable[None] | None]


class DuplicateScenarioError(ValueError):
    """Raised when two scenarios are registered under the same name."""


def _normalize_traits(traits: TraitDeclaration) -> Mapping[str, tuple[str, ...]]:
    normalized: dict[str, tuple[str, ...]] = {}
    for key, values in traits.items():
        if isinstance(values, str):
            values = (values,)
        normalized[key] = tuple(dict.fromkeys(values))
    return MappingProxyType(normalized)


class ScenarioRegistry:
    """Ordered collection of scenario test cases and cleanup hooks."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._cases: dict[str, TestCase] = {}
        self._cleanup_hooks: list[CleanupHook] = []

    def __repr__(self) -> str:
        return f"ScenarioRegistry(name={self.name!r}, cases={len(self._cases)})"

    @property
    def test_cases(self) -> Sequence[TestCase]:
        """Registered cases in registration order."""
        return tuple(self._cases.values())

    @property
    def cleanup_hooks(self) -> Sequence[CleanupHook]:
        """Hooks to run once every case has finished."""
        return tuple(self._cleanup_hooks)

    def scenario(
        self,
        *,
        name: str | None = None,
        traits: TraitDeclaration | None = None,
        skip: str | None = None,
    ) -> Callable[[ScenarioBody], ScenarioBody]:
        """Register the decorated function as a scenario test case.

        Args:
            name: Display name, defaults to ``module.qualname`` of the body
            traits: Trait key mapped to one value or a sequence of values
            skip: Reason to always skip the scenario

        Returns:
            Decorator returning the body unchanged

        """

        def decorator(body: ScenarioBody) -> ScenarioBody:
            display_name = name or f"{body.__module__}.{body.__qualname__}"
            if display_name in self._cases:
                raise DuplicateScenarioError(
                    f"Scenario '{display_name}' is already registered in {self.name}"
                )
            self._cases[display_name] = TestCase(
                display_name=display_name,
                collection=body.__module__,
                traits=_normalize_traits(traits or {}),
                skip_reason=skip,
                body=body,
            )
            log.debug("Registered scenario %s", display_name)
            return body

        return decorator

    def cleanup(self, hook: CleanupHook) -> CleanupHook:
        """Register a hook that runs after all scenarios of a run."""
        self._cleanup_hooks.append(hook)
        return hook
