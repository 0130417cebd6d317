"""Policies that alter view tokens after discovery."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from .tokens import ViewToken

if TYPE_CHECKING:
    from .registry import ViewEngines

ViewFilter = Callable[[ViewToken], bool]
ViewAlteration = Callable[[ViewToken], None]


class ViewTokenPolicy:
    """Alters every view token matching a filter.

    The description is for diagnostics only and plays no part in matching.
    """

    def __init__(
        self, filter: ViewFilter, alteration: ViewAlteration, description: str
    ) -> None:
        self._filter = filter
        self._alteration = alteration
        self._description = description

    def matches(self, token: ViewToken) -> bool:
        return bool(self._filter(token))

    def apply(self, token: ViewToken) -> None:
        self._alteration(token)

    def alter(self, tokens: Iterable[ViewToken]) -> None:
        """Apply the alteration to each matching token, in order."""
        for token in tokens:
            if self.matches(token):
                self.apply(token)

    def describe(self) -> str:
        return self._description

    def __str__(self) -> str:
        return f"ViewTokenPolicy: {self._description}"

    def __repr__(self) -> str:
        return f"ViewTokenPolicy({self._description!r})"


class ActivationExpression:
    """Fluent helper scoping configuration to views matching a filter.

    Returned by :meth:`ViewEngines.if_the_view_matches` and
    :meth:`ViewEngines.if_the_input_model_matches`. Every method registers
    directly on the owning registry and returns the expression, so calls
    can be chained::

        engines.if_the_view_matches(lambda t: t.namespace == "admin") \\
            .set_profile("admin") \\
            .set_metadata("layout", "admin_layout")
    """

    def __init__(self, engines: ViewEngines, filter: ViewFilter) -> None:
        self._engines = engines
        self._filter = filter

    def alter(
        self, alteration: ViewAlteration, description: str | None = None
    ) -> ActivationExpression:
        """Register a policy applying ``alteration`` to matching views."""
        if description is None:
            description = getattr(alteration, "__name__", repr(alteration))
        self._engines.add_policy(ViewTokenPolicy(self._filter, alteration, description))
        return self

    def set_metadata(self, key: str, value: Any) -> ActivationExpression:
        def set_value(token: ViewToken) -> None:
            token.metadata[key] = value

        return self.alter(set_value, f"Set metadata {key}={value!r}")

    def set_profile(self, profile: str) -> ActivationExpression:
        """Render matching views with the named tag profile."""

        def assign_profile(token: ViewToken) -> None:
            token.profile = profile

        return self.alter(assign_profile, f"Set tag profile to {profile!r}")

    def exclude(self) -> ActivationExpression:
        """Remove matching views from the view bag."""
        self._engines.exclude_views(self._filter)
        return self
