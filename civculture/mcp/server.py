"""MCP server wrapping the culture engine for interactive AI playtesting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mcp.server.fastmcp import FastMCP

from civculture.building import BuildingDef, try_purchase
from civculture.config import EngineConfig
from civculture.defaults import default_buildings
from civculture.engine import AchievementEngine
from civculture.errors import CultureError
from civculture.events import EventBus
from civculture.formatting import condition_requirement_text
from civculture.state import GameState

# Maximum ticks per tick() call
_MAX_TICKS = 1000


@dataclass
class _GameHolder:
    """Holds the live game state, event bus and culture engine."""

    config: EngineConfig
    state: GameState
    events: EventBus
    engine: AchievementEngine
    buildings: dict[str, BuildingDef] = field(default_factory=dict)


def _new_holder(config: EngineConfig | None = None) -> _GameHolder:
    config = config or EngineConfig()
    state = GameState()
    events = EventBus()
    engine = AchievementEngine.with_ledger(state, config)
    engine.init(events)
    return _GameHolder(
        config=config,
        state=state,
        events=events,
        engine=engine,
        buildings={b.id: b for b in default_buildings()},
    )


def _condition_info(cond) -> dict[str, Any]:
    return {
        "id": cond.id,
        "description": cond.description,
        "reward_points": cond.reward_points,
        "requires": condition_requirement_text(cond),
    }


# ── Tool logic functions (testable without MCP protocol) ────────────


def _tool_get_conditions(holder: _GameHolder) -> dict[str, Any]:
    return {
        "pending": [_condition_info(c) for c in holder.engine.pending],
        "fulfilled": [_condition_info(c) for c in holder.engine.fulfilled],
    }


def _tool_get_game_state(holder: _GameHolder) -> dict[str, Any]:
    state = holder.state
    buildings = {}
    for b in holder.buildings.values():
        buildings[b.id] = {
            "singular": b.singular,
            "owned": state.quantity_of(b.id),
            "visible": b.show_purchase_row(state),
            "purchasable": b.can_purchase(state),
            "cost": b.requirement_text(),
        }
    return {
        "population": state.population_living(),
        "culture": state.quantity_of(holder.config.reward_currency),
        "quantities": dict(state.quantities),
        "buildings": buildings,
        "messages": list(holder.engine.sink.messages),
    }


def _tool_set_quantity(holder: _GameHolder, id: str, amount: float) -> dict[str, Any]:
    if amount < 0:
        return {"error": "Amount cannot be negative"}
    holder.state.set_quantity(id, amount)
    return {"id": id, "amount": amount}


def _tool_set_population(holder: _GameHolder, count: int) -> dict[str, Any]:
    if count < 0:
        return {"error": "Population cannot be negative"}
    holder.state.population = count
    return {"population": count}


def _tool_tick(holder: _GameHolder, count: int = 1) -> dict[str, Any]:
    if count < 1:
        return {"error": "Count must be at least 1"}
    if count > _MAX_TICKS:
        return {"error": f"Count cannot exceed {_MAX_TICKS}"}

    fulfilled_before = len(holder.engine.fulfilled)
    try:
        for _ in range(count):
            holder.events.publish(holder.config.tick_topic)
    except CultureError as e:
        return {"error": str(e)}

    new = holder.engine.fulfilled[fulfilled_before:]
    result: dict[str, Any] = {
        "ticks": count,
        "culture": holder.state.quantity_of(holder.config.reward_currency),
    }
    if new:
        result["new_conditions"] = [c.id for c in new]
    return result


def _tool_purchase(holder: _GameHolder, building_id: str, quantity: int = 1) -> dict[str, Any]:
    if quantity < 1:
        return {"error": "Quantity must be at least 1"}
    building = holder.buildings.get(building_id)
    if building is None:
        return {"error": f"Unknown building: {building_id!r}"}
    if not building.prereqs_met(holder.state):
        return {"success": False, "reason": "Not available (requirements not met)"}
    if not try_purchase(holder.state, building, quantity):
        return {"success": False, "reason": f"Cannot afford {building.requirement_text()}"}
    return {
        "success": True,
        "building_id": building_id,
        "owned": holder.state.quantity_of(building_id),
    }


def _tool_save_progress(holder: _GameHolder) -> dict[str, Any]:
    return holder.engine.serialize()


def _tool_load_progress(holder: _GameHolder, data: dict[str, Any]) -> dict[str, Any]:
    try:
        holder.engine.deserialize(data)
    except CultureError as e:
        return {"error": str(e)}
    return {
        "success": True,
        "pending": len(holder.engine.pending),
        "fulfilled": len(holder.engine.fulfilled),
    }


def _tool_reset_game(holder: _GameHolder) -> dict[str, Any]:
    holder.engine.reset()
    return {"success": True, "message": "Culture progress reset to initial conditions"}


# ── Server factory ──────────────────────────────────────────────────


def create_server(config: EngineConfig | None = None) -> FastMCP:
    """Create an MCP server wrapping a fresh culture engine."""
    holder = _new_holder(config)

    mcp = FastMCP(
        name=f"civculture: {holder.config.name}",
    )

    @mcp.tool()
    def get_conditions() -> dict[str, Any]:
        """List pending and fulfilled culture conditions with their requirements."""
        return _tool_get_conditions(holder)

    @mcp.tool()
    def get_game_state() -> dict[str, Any]:
        """Get population, culture, owned quantities and building availability."""
        return _tool_get_game_state(holder)

    @mcp.tool()
    def set_quantity(id: str, amount: float) -> dict[str, Any]:
        """Set the owned quantity of a resource or building."""
        return _tool_set_quantity(holder, id, amount)

    @mcp.tool()
    def set_population(count: int) -> dict[str, Any]:
        """Set the living population."""
        return _tool_set_population(holder, count)

    @mcp.tool()
    def tick(count: int = 1) -> dict[str, Any]:
        """Publish N game ticks (max 1000). Returns newly fulfilled conditions."""
        return _tool_tick(holder, count)

    @mcp.tool()
    def purchase(building_id: str, quantity: int = 1) -> dict[str, Any]:
        """Buy a building if its prerequisites are met and it is affordable."""
        return _tool_purchase(holder, building_id, quantity)

    @mcp.tool()
    def save_progress() -> dict[str, Any]:
        """Return the serialized culture progress."""
        return _tool_save_progress(holder)

    @mcp.tool()
    def load_progress(data: dict[str, Any]) -> dict[str, Any]:
        """Replace culture progress with a previously saved payload."""
        return _tool_load_progress(holder, data)

    @mcp.tool()
    def reset_game() -> dict[str, Any]:
        """Reset culture progress to the default conditions."""
        return _tool_reset_game(holder)

    return mcp
