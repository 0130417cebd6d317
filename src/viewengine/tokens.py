"""View tokens and the base exception for viewengine.

A view token is the handle a facility produces for one discoverable view
template. Its ``source`` is the token's identity and never changes once the
token exists; everything else may be altered by policies after discovery.
"""

from pathlib import PurePosixPath
from typing import Any


class ViewEngineError(Exception):
    """Base exception for viewengine errors."""

    pass


class ViewToken:
    """One discovered view and its input model.

    Attributes:
        source: Unique identity (template path or logical name). Read-only.
        name: Logical view name. Defaults to the stem of ``source``.
        view_model: Input model type the view renders, or None.
        namespace: Dotted namespace of the view, or None.
        origin: Name of the facility that produced the token.
        metadata: Free-form facility and policy data.
    """

    __slots__ = ("_source", "name", "view_model", "namespace", "origin", "metadata")

    def __init__(
        self,
        source: str,
        name: str | None = None,
        view_model: type | None = None,
        namespace: str | None = None,
        origin: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if not source:
            raise ValueError("ViewToken source cannot be empty")
        self._source = str(source)
        self.name = name if name is not None else PurePosixPath(self._source).stem
        self.view_model = view_model
        self.namespace = namespace
        self.origin = origin
        self.metadata: dict[str, Any] = dict(metadata) if metadata else {}

    @property
    def source(self) -> str:
        return self._source

    @property
    def profile(self) -> str | None:
        """Tag profile the view renders with, if one was assigned."""
        return self.metadata.get("profile")

    @profile.setter
    def profile(self, value: str | None) -> None:
        if value is None:
            self.metadata.pop("profile", None)
        else:
            self.metadata["profile"] = value

    @property
    def model_name(self) -> str | None:
        if self.view_model is not None:
            return self.view_model.__name__
        return self.metadata.get("model")

    def to_dict(self) -> dict[str, Any]:
        """Plain representation for display and serialization."""
        return {
            "name": self.name,
            "source": self.source,
            "namespace": self.namespace,
            "model": self.model_name,
            "origin": self.origin,
            "metadata": dict(self.metadata),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ViewToken):
            return NotImplemented
        return self._source == other._source

    def __hash__(self) -> int:
        return hash(self._source)

    def __repr__(self) -> str:
        return f"ViewToken({self.name!r}, source={self._source!r})"
