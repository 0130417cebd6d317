"""The view engine registry.

:class:`ViewEngines` collects facilities, exclusion filters and policies
while the application is being configured, then builds the view bag the
first time :attr:`ViewEngines.views` is read:

1. every facility discovers tokens against the graph, in registration order;
2. tokens matching any exclusion filter are removed;
3. policies alter the remaining tokens, in registration order.

The bag is built once. Registrations made after the first read have no
effect on it, and an error raised by the first build is raised again by
every later read.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from .bag import ViewBag
from .facilities import ViewFacility, discover_facilities
from .graph import CommonViewNamespaces, ViewGraph
from .policies import ActivationExpression, ViewFilter, ViewTokenPolicy
from .tokens import ViewToken

if TYPE_CHECKING:
    from .config import ViewEngineConfig

logger = logging.getLogger(__name__)


class ViewEngines:
    """Registry of view facilities and the views they produce."""

    def __init__(self, views: Iterable[ViewToken] | None = None) -> None:
        self._excludes: list[ViewFilter] = []
        self._facilities: list[ViewFacility] = []
        self._policies: list[ViewTokenPolicy] = []
        self._graph: Any = None
        self._lock = threading.Lock()
        self._bag: ViewBag | None = None
        self._build_error: Exception | None = None
        # Fixed views skip discovery entirely (used by tests and tooling)
        self._fixed_views = list(views) if views is not None else None

    @property
    def views(self) -> ViewBag:
        """All of the views found in this application."""
        bag = self._bag
        if bag is None:
            with self._lock:
                if self._build_error is not None:
                    raise self._build_error
                if self._bag is None:
                    try:
                        self._bag = self._build_view_bag()
                    except Exception as e:
                        # A failed build is final; later reads re-raise it
                        self._build_error = e
                        raise
                bag = self._bag
        return bag

    @property
    def is_built(self) -> bool:
        return self._bag is not None

    @property
    def facilities(self) -> tuple[ViewFacility, ...]:
        """All of the registered view facilities."""
        return tuple(self._facilities)

    @property
    def policies(self) -> tuple[ViewTokenPolicy, ...]:
        return tuple(self._policies)

    @property
    def graph(self) -> Any:
        return self._graph

    def use_graph(self, graph: Any) -> None:
        """Bind the context facilities discover views against."""
        self._graph = graph

    def add_facility(self, facility: ViewFacility) -> None:
        """Register a view facility.

        Only one facility per concrete type is kept; registering another
        instance of an already registered type does nothing.
        """
        facility_type = type(facility)
        if any(type(f) is facility_type for f in self._facilities):
            logger.debug("Ignoring duplicate facility %s", facility_type.__name__)
            return
        self._facilities.append(facility)

    def add_policy(self, policy: ViewTokenPolicy) -> None:
        """Add a policy altering views at configuration time."""
        self._policies.append(policy)

    def exclude_views(self, filter: ViewFilter) -> None:
        """Remove discovered views matching ``filter`` from the view bag."""
        self._excludes.append(filter)

    def if_the_view_matches(self, filter: ViewFilter) -> ActivationExpression:
        """Scope configuration to views matching ``filter``.

        See also :meth:`if_the_input_model_matches`.
        """
        return ActivationExpression(self, filter)

    def if_the_input_model_matches(
        self, filter: Callable[[type | None], bool]
    ) -> ActivationExpression:
        """Scope configuration to views whose input model matches ``filter``."""
        return self.if_the_view_matches(lambda token: filter(token.view_model))

    def _build_view_bag(self) -> ViewBag:
        if self._fixed_views is not None:
            return ViewBag(self._fixed_views)

        views: list[ViewToken] = []
        for facility in self._facilities:
            found = list(facility.discover(self._graph))
            logger.debug("Facility %s found %d view(s)", facility.name, len(found))
            views.extend(found)

        discovered = len(views)
        views = [v for v in views if not any(exclude(v) for exclude in self._excludes)]

        for policy in self._policies:
            policy.alter(views)

        logger.info(
            "Built view bag: %d discovered, %d excluded, %d policies applied",
            discovered,
            discovered - len(views),
            len(self._policies),
        )
        return ViewBag(views)


def build_engines(
    config: ViewEngineConfig | None = None, models: Iterable[type] = ()
) -> ViewEngines:
    """Create a registry wired from configuration.

    Binds a :class:`ViewGraph` over the configured template directories,
    namespaces and ``models``, registers the facilities returned by
    :func:`discover_facilities`, the ``exclude`` patterns and the
    ``profiles`` rules.

    Args:
        config: Optional loaded configuration.
        models: Input model types templates may refer to by class name.

    Returns:
        A configured, not yet built, registry.
    """
    namespaces = CommonViewNamespaces()
    graph = ViewGraph(namespaces=namespaces)
    for model in models:
        graph.register_model(model)

    engines = ViewEngines()
    engines.use_graph(graph)

    for facility in discover_facilities(config):
        engines.add_facility(facility)

    if config is None:
        return engines

    graph.template_dirs.extend(config.template_dirs)
    for namespace in config.namespaces:
        namespaces.add(namespace)

    for pattern in config.exclude:
        engines.exclude_views(glob_filter(pattern))

    for pattern, profile in config.profiles.items():
        engines.if_the_view_matches(glob_filter(pattern)).set_profile(profile)

    return engines


def glob_filter(pattern: str) -> ViewFilter:
    """Match a view whose source or name matches a glob pattern."""

    def matches(token: ViewToken) -> bool:
        return fnmatch.fnmatchcase(token.source, pattern) or fnmatch.fnmatchcase(
            token.name, pattern
        )

    return matches
