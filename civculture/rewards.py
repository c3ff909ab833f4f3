from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from civculture.state import GameState

logger = logging.getLogger(__name__)


class CultureLedger:
    """Reward sink that credits culture to the game state and keeps a game log."""

    def __init__(
        self,
        state: GameState,
        currency: str = "culture",
        on_notify: Callable[[str], None] | None = None,
    ) -> None:
        self.state = state
        self.currency = currency
        self.on_notify = on_notify
        self.messages: list[str] = []

    def grant(self, points: float) -> None:
        self.state.add_quantity(self.currency, points)

    def notify(self, message: str) -> None:
        self.messages.append(message)
        logger.info(message)
        if self.on_notify is not None:
            self.on_notify(message)

    @property
    def total(self) -> float:
        return self.state.quantity_of(self.currency)
