from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class GameStateView(Protocol):
    """Read-only view of the game facts a requirement or predicate may query."""

    def quantity_of(self, id: str) -> float: ...

    def population_living(self) -> int: ...


@runtime_checkable
class RewardSink(Protocol):
    """Where granted culture points and their announcements go."""

    def grant(self, points: float) -> None: ...

    def notify(self, message: str) -> None: ...


Predicate = Callable[[GameStateView], bool]
