"""View facilities: pluggable sources of view tokens.

A facility turns the discovery graph into view tokens. The bundled
:class:`TemplateFacility` scans template directories on disk. Additional
facilities can be dropped into a ``facilities_dir`` as .py files defining
ViewFacility subclasses.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup

from .tokens import ViewEngineError, ViewToken

if TYPE_CHECKING:
    from .config import ViewEngineConfig

logger = logging.getLogger(__name__)

# Facility names appear in config files and CLI output.
_SAFE_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")

MODEL_META_NAME = "view-model"


class ViewFacility(ABC):
    """Abstract base class for view facilities.

    Every facility must define the class attribute ``name`` (matching
    ``[a-z][a-z0-9_]*``) and implement :meth:`discover`.

    ``discover`` must be a pure function of the graph at call time. The
    registry caches its results; facilities must not.
    """

    name: str

    def __init_subclass__(cls, **kwargs: object) -> None:
        """Validate the facility name at definition time."""
        super().__init_subclass__(**kwargs)

        # Skip validation for intermediate abstract classes
        if getattr(cls, "__abstractmethods__", None):
            return

        if not hasattr(cls, "name"):
            raise TypeError(f"ViewFacility subclass {cls.__name__} must define 'name'")
        if not isinstance(cls.name, str) or not _SAFE_NAME_RE.match(cls.name):
            raise TypeError(
                f"ViewFacility subclass {cls.__name__} has invalid name "
                f"{cls.name!r}: must match [a-z][a-z0-9_]*"
            )

    @abstractmethod
    def discover(self, graph: Any) -> Iterable[ViewToken]:
        """Return or yield the view tokens this facility finds in ``graph``."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class TemplateFacility(ViewFacility):
    """Discovers HTML templates under the graph's template directories.

    A template declares its input model with
    ``<meta name="view-model" content="package.module.Model">``; the
    content is resolved through ``graph.resolve_model``. The template's
    directory relative to its template root becomes its namespace.
    """

    name = "template"

    def __init__(self, extensions: tuple[str, ...] | list[str] = (".html", ".htm")):
        self.extensions = tuple(ext.lower() for ext in extensions)

    def discover(self, graph: Any) -> list[ViewToken]:
        if graph is None:
            logger.warning("No graph bound; template facility found nothing")
            return []

        tokens: list[ViewToken] = []
        for root in getattr(graph, "template_dirs", []):
            root = Path(root)
            if not root.is_dir():
                logger.warning("Template directory does not exist: %s", root)
                continue

            for path in sorted(root.rglob("*")):
                if path.is_file() and path.suffix.lower() in self.extensions:
                    tokens.append(self._read_template(path, root, graph))

        return tokens

    def _read_template(self, path: Path, root: Path, graph: Any) -> ViewToken:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ViewEngineError(f"Cannot read template {path}: {e}") from e

        soup = BeautifulSoup(content, "html.parser")
        metadata: dict[str, Any] = {}

        title = soup.find("title")
        if title is not None and title.get_text(strip=True):
            metadata["title"] = title.get_text(strip=True)

        view_model = None
        meta = soup.find("meta", attrs={"name": MODEL_META_NAME})
        if meta is not None and meta.get("content"):
            model_name = meta["content"].strip()
            metadata["model"] = model_name
            view_model = graph.resolve_model(model_name)

        relative = path.parent.relative_to(root)
        namespace = ".".join(relative.parts) or None

        return ViewToken(
            path.as_posix(),
            view_model=view_model,
            namespace=namespace,
            origin=self.name,
            metadata=metadata,
        )


def discover_facilities(config: ViewEngineConfig | None = None) -> list[ViewFacility]:
    """Collect the facilities a configured application should register.

    Starts with the built-in :class:`TemplateFacility`, then adds plugin
    facilities from ``config.facilities_dir``, then drops facilities
    disabled in the config's ``facilities:`` section.

    Args:
        config: Optional configuration.

    Returns:
        List of facility instances, in registration order.
    """
    extensions = config.extensions if config is not None else (".html", ".htm")
    facilities: list[ViewFacility] = [TemplateFacility(extensions)]

    if config is not None and config.facilities_dir is not None:
        plugin_dir = Path(config.facilities_dir)
        if plugin_dir.is_dir():
            facilities.extend(scan_directory(plugin_dir))
        else:
            logger.warning("facilities_dir does not exist: %s", plugin_dir)

    if config is not None:
        facilities = filter_by_config(facilities, config)

    return facilities


def filter_by_config(
    facilities: list[ViewFacility], config: ViewEngineConfig
) -> list[ViewFacility]:
    """Keep the facilities the config's ``facilities:`` section leaves on.

    Names missing from the section stay enabled.
    """
    switches = config.facilities
    if switches is None:
        return facilities
    return [f for f in facilities if switches.get(f.name, True)]


def scan_directory(directory: Path) -> list[ViewFacility]:
    """Instantiate the plugin facilities defined in a directory.

    Every public .py file is loaded as a standalone module. A file that
    fails to load, or a facility whose constructor fails, is logged and
    left out rather than aborting the scan.
    """
    if not directory.is_dir():
        return []

    facilities: list[ViewFacility] = []
    for py_file in sorted(directory.glob("*.py")):
        if py_file.name.startswith("_"):
            continue
        try:
            module = _import_file(py_file)
        except Exception:
            logger.warning("Failed to import facility file: %s", py_file)
            continue

        for facility_type in _facility_types(module):
            try:
                facilities.append(facility_type())
            except Exception:
                logger.warning(
                    "Failed to instantiate facility %s from %s",
                    facility_type.__name__,
                    py_file,
                )
    return facilities


def _facility_types(module) -> list[type[ViewFacility]]:
    # Only classes whose home is this file count. A plugin that imports
    # TemplateFacility (or another plugin's class) to subclass it must not
    # register that import a second time.
    return [
        obj
        for _name, obj in inspect.getmembers(module, inspect.isclass)
        if issubclass(obj, ViewFacility)
        and obj.__module__ == module.__name__
        and not inspect.isabstract(obj)
    ]


def _import_file(path: Path):
    """Load ``path`` as a module named after its stem, outside sys.modules."""
    spec = importlib.util.spec_from_file_location(
        f"viewengine_facility_{path.stem}", path
    )
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot create module spec for {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
