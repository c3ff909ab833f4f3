"""Built-in culture content: the shipped predicate registry and starting conditions."""
from __future__ import annotations

from typing import TYPE_CHECKING

from civculture.building import BuildingDef
from civculture.condition import Condition, RegistryRef, TreeRef
from civculture.registry import ConditionRegistry
from civculture.requirement import Req

if TYPE_CHECKING:
    from civculture._types import GameStateView


def population_at_least(count: int):
    def check(state: GameStateView) -> bool:
        return state.population_living() >= count

    check.__name__ = f"population_at_least_{count}"
    return check


def default_registry() -> ConditionRegistry:
    """Registry holding every predicate the built-in conditions refer to."""
    registry = ConditionRegistry()
    for count in (10, 100, 1000):
        registry.register(f"population>={count}", population_at_least(count))
    return registry


def default_conditions() -> list[Condition]:
    """Fresh, unbound copies of the starting culture conditions."""
    return [
        Condition("pop10", "10 population", 1, RegistryRef("population>=10")),
        Condition("pop100", "100 population", 2, RegistryRef("population>=100")),
        Condition("food200", "owning 200 food", 1, TreeRef(Req.resource("food", 200))),
        Condition("pop1000", "1000 population", 5, RegistryRef("population>=1000")),
        Condition(
            "builder",
            "building a barn and a woodstock",
            1,
            TreeRef(Req.tool("barn", 1) & Req.tool("woodstock", 1)),
        ),
    ]


def default_buildings() -> list[BuildingDef]:
    """Buildings whose purchase rows are gated by requirement trees."""
    return [
        BuildingDef("tent", "tent", cost={"wood": 2, "skins": 2}),
        BuildingDef("hut", "wooden hut", prereqs=Req.tool("tent"), cost={"wood": 20, "skins": 1}),
        BuildingDef("barn", "barn", prereqs=Req.tool("hut"), cost={"wood": 100}),
        BuildingDef("woodstock", "woodstock", prereqs=Req.tool("hut"), cost={"wood": 100}),
        BuildingDef(
            "granary",
            "granary",
            prereqs=Req.tool("barn") & (Req.resource("food", 100) | Req.tool("woodstock")),
            cost={"wood": 30, "stone": 30},
        ),
    ]
