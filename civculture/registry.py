from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterator

from civculture.errors import UnknownConditionId

if TYPE_CHECKING:
    from civculture._types import Predicate


class ConditionRegistry:
    """Closed set of named predicates that saved conditions refer to by id.

    Saves store only the id; the callable is looked up here on load.
    """

    def __init__(self) -> None:
        self._predicates: dict[str, Predicate] = {}

    def register(self, id: str, predicate: Predicate) -> None:
        if not callable(predicate):
            raise TypeError(f"Predicate for {id!r} must be callable")
        if id in self._predicates:
            raise ValueError(f"Predicate id already registered: {id!r}")
        self._predicates[id] = predicate

    def predicate(self, id: str) -> Callable[[Predicate], Predicate]:
        """Decorator form of :meth:`register`."""

        def decorator(fn: Predicate) -> Predicate:
            self.register(id, fn)
            return fn

        return decorator

    def resolve(self, id: str) -> Predicate:
        try:
            return self._predicates[id]
        except KeyError:
            raise UnknownConditionId(id) from None

    def unregister(self, id: str) -> None:
        if self._predicates.pop(id, None) is None:
            raise UnknownConditionId(id)

    def ids(self) -> list[str]:
        return list(self._predicates)

    def __contains__(self, id: object) -> bool:
        return id in self._predicates

    def __iter__(self) -> Iterator[str]:
        return iter(self._predicates)

    def __len__(self) -> int:
        return len(self._predicates)
