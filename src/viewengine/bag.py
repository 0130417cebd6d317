"""The view bag: the final, read-only collection of discovered views."""

from collections.abc import Callable, Iterable, Sequence

from .tokens import ViewToken


class ViewBag(Sequence):
    """Read-only, ordered collection of view tokens."""

    def __init__(self, views: Iterable[ViewToken] = ()):
        self._views: tuple[ViewToken, ...] = tuple(views)
        self._by_source = {view.source: view for view in self._views}

    def __getitem__(self, index):
        return self._views[index]

    def __len__(self) -> int:
        return len(self._views)

    def __iter__(self):
        return iter(self._views)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self._by_source
        return item in self._views

    def find(self, source: str) -> ViewToken | None:
        """Look up a view by its source identity."""
        return self._by_source.get(source)

    def views_for(self, model_type: type) -> list[ViewToken]:
        """All views whose input model is exactly ``model_type``."""
        return [view for view in self._views if view.view_model is model_type]

    def where(self, predicate: Callable[[ViewToken], bool]) -> list[ViewToken]:
        return [view for view in self._views if predicate(view)]

    def names(self) -> list[str]:
        return [view.name for view in self._views]

    def __repr__(self) -> str:
        return f"ViewBag({len(self._views)} views)"
