"""viewengine - Discover, filter and alter view templates from pluggable facilities."""

__version__ = "0.1.0"

from .bag import ViewBag
from .facilities import TemplateFacility, ViewFacility, discover_facilities
from .graph import CommonViewNamespaces, ViewGraph
from .policies import ActivationExpression, ViewTokenPolicy
from .registry import ViewEngines, build_engines
from .tokens import ViewEngineError, ViewToken

__all__ = [
    "ViewToken",
    "ViewFacility",
    "TemplateFacility",
    "ViewTokenPolicy",
    "ActivationExpression",
    "ViewBag",
    "ViewEngines",
    "ViewGraph",
    "CommonViewNamespaces",
    "ViewEngineError",
    "build_engines",
    "discover_facilities",
    "__version__",
]
