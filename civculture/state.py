from __future__ import annotations


class GameState:
    """Mutable container for the game facts culture conditions read."""

    def __init__(
        self,
        quantities: dict[str, float] | None = None,
        population: int = 0,
    ) -> None:
        self.quantities: dict[str, float] = dict(quantities or {})
        self.population: int = population

    def quantity_of(self, id: str) -> float:
        return self.quantities.get(id, 0)

    def population_living(self) -> int:
        return self.population

    def set_quantity(self, id: str, amount: float) -> None:
        self.quantities[id] = amount

    def add_quantity(self, id: str, amount: float) -> float:
        self.quantities[id] = self.quantities.get(id, 0) + amount
        return self.quantities[id]
