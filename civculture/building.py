from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from civculture.requirement import Req, Requirement, describe

if TYPE_CHECKING:
    from civculture.state import GameState


@dataclass
class BuildingDef:
    """A purchasable building gated by a prerequisite tree."""

    id: str
    singular: str = ""
    prereqs: Requirement | None = None
    cost: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.singular:
            self.singular = self.id

    def prereqs_met(self, state: GameState) -> bool:
        return self.prereqs is None or self.prereqs.is_fulfilled(state)

    def show_purchase_row(self, state: GameState) -> bool:
        """Owned buildings stay listed even if their prereqs stop holding."""
        return state.quantity_of(self.id) > 0 or self.prereqs_met(state)

    def cost_requirement(self, quantity: int = 1) -> Requirement:
        return Req.all(*(Req.resource(res, amount * quantity) for res, amount in self.cost.items()))

    def requirement_text(self) -> str:
        if not self.cost:
            return "free"
        return describe(self.cost_requirement())

    def can_purchase(self, state: GameState, quantity: int = 1) -> bool:
        return self.prereqs_met(state) and self.cost_requirement(quantity).is_fulfilled(state)


def try_purchase(state: GameState, building: BuildingDef, quantity: int = 1) -> bool:
    """Pay for and add *quantity* of *building*. Returns True on success."""
    if quantity < 1 or not building.can_purchase(state, quantity):
        return False
    for res, amount in building.cost.items():
        state.add_quantity(res, -amount * quantity)
    state.add_quantity(building.id, quantity)
    return True
