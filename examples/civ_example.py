"""A small CivClicker session: buy buildings, grow, and earn culture."""
from __future__ import annotations

from pathlib import Path

from civculture.building import try_purchase
from civculture.config import EngineConfig
from civculture.defaults import default_buildings
from civculture.engine import AchievementEngine
from civculture.events import EventBus
from civculture.persistence import JsonFileStore
from civculture.state import GameState


def play_session(save_path: str | Path, ticks: int = 30) -> tuple[AchievementEngine, GameState]:
    """Run a scripted session, saving culture progress to *save_path*."""
    config = EngineConfig(save_path=str(save_path))
    state = GameState({"wood": 500, "skins": 10, "food": 50})
    events = EventBus()
    engine = AchievementEngine.with_ledger(state, config)
    store = JsonFileStore(config.save_path)
    store.load(engine)
    engine.init(events)

    buildings = {b.id: b for b in default_buildings()}
    for building_id in ("tent", "hut", "barn", "woodstock"):
        try_purchase(state, buildings[building_id])

    for _ in range(ticks):
        state.population += 5
        state.add_quantity("food", 10)
        events.publish(config.tick_topic)

    store.save(engine)
    engine.unload()
    return engine, state


if __name__ == "__main__":
    import logging
    import tempfile

    from civculture.formatting import format_culture_report

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    with tempfile.TemporaryDirectory() as tmp:
        engine, state = play_session(Path(tmp) / "save.json")
        print(format_culture_report(engine, state))
