"""Discovery context handed to view facilities.

The registry treats the graph as opaque. The bundled facilities expect a
:class:`ViewGraph`: the template directories to scan, the input model types
views may declare, and the namespaces every view can rely on.
"""

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Namespaces available to every view before host configuration adds its own.
DEFAULT_NAMESPACES = (
    "html",
    "pathlib",
    "itertools",
    "viewengine",
)


class CommonViewNamespaces:
    """Ordered, de-duplicated set of namespaces shared by all views."""

    def __init__(self, namespaces=DEFAULT_NAMESPACES):
        self._namespaces: list[str] = []
        for namespace in namespaces:
            self.add(namespace)

    def add(self, namespace: str) -> None:
        if not namespace:
            raise ValueError("Namespace cannot be empty")
        if namespace not in self._namespaces:
            self._namespaces.append(namespace)

    @property
    def namespaces(self) -> list[str]:
        return list(self._namespaces)

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._namespaces

    def __iter__(self):
        return iter(self._namespaces)

    def __len__(self) -> int:
        return len(self._namespaces)


@dataclass
class ViewGraph:
    """Host application state that facilities discover views against."""

    template_dirs: list[Path] = field(default_factory=list)
    models: dict[str, type] = field(default_factory=dict)
    namespaces: CommonViewNamespaces = field(default_factory=CommonViewNamespaces)

    def register_model(self, model_type: type, name: str | None = None) -> None:
        """Make an input model type resolvable by name."""
        self.models[name or model_type.__name__] = model_type

    def resolve_model(self, name: str) -> type | None:
        """Resolve an input model name to a type.

        Registered names win. Otherwise ``name`` is treated as an import
        path, either ``package.module.Class`` or ``package.module:Class``.

        Returns:
            The model type, or None if it cannot be resolved.
        """
        if name in self.models:
            return self.models[name]

        if ":" in name:
            module_name, _, attr = name.partition(":")
        else:
            module_name, _, attr = name.rpartition(".")

        if not module_name or not attr:
            logger.warning("Unknown view model: %s", name)
            return None

        try:
            module = importlib.import_module(module_name)
        except ImportError:
            logger.warning("Cannot import module for view model: %s", name)
            return None

        model = getattr(module, attr, None)
        if not isinstance(model, type):
            logger.warning("View model %s is not a class", name)
            return None
        return model
