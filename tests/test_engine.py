"""Tests for engine module."""
import logging

import pytest

from civculture.condition import Condition, RegistryRef, TreeRef
from civculture.config import EngineConfig
from civculture.defaults import default_conditions, default_registry
from civculture.engine import AchievementEngine
from civculture.errors import InternalInvariantViolation, MalformedPersistedState
from civculture.events import EventBus
from civculture.requirement import Req
from civculture.state import GameState


class _RecordingSink:
    def __init__(self):
        self.points: list[float] = []
        self.messages: list[str] = []

    def grant(self, points):
        self.points.append(points)

    def notify(self, message):
        self.messages.append(message)


def _two_food_conditions() -> list[Condition]:
    return [
        Condition("a", "first", 1, TreeRef(Req.resource("food", 10))),
        Condition("b", "second", 2, TreeRef(Req.resource("food", 10))),
        Condition("c", "third", 3, TreeRef(Req.resource("wood", 10))),
    ]


def _make_engine(defaults=None, state=None):
    state = state or GameState()
    sink = _RecordingSink()
    engine = AchievementEngine(state, sink, defaults=defaults)
    engine.setup_default_conditions()
    return engine, state, sink


def _ids(conditions) -> list[str]:
    return [c.id for c in conditions]


def _assert_partition(engine, expected_ids):
    pending = _ids(engine.pending)
    fulfilled = _ids(engine.fulfilled)
    assert not set(pending) & set(fulfilled)
    assert sorted(pending + fulfilled) == sorted(expected_ids)
    assert all(not c.fulfilled for c in engine.pending)
    assert all(c.fulfilled for c in engine.fulfilled)


# ── Setup / reset ────────────────────────────────────────────────────


class TestSetup:
    def test_defaults_start_pending(self):
        engine, _, _ = _make_engine()
        assert _ids(engine.pending) == ["pop10", "pop100", "food200", "pop1000", "builder"]
        assert engine.fulfilled == []

    def test_setup_replaces_rather_than_appends(self):
        engine, _, _ = _make_engine()
        engine.setup_default_conditions()
        assert len(engine.pending) == 5

    def test_reset_discards_progress(self):
        engine, state, _ = _make_engine()
        state.population = 150
        engine.on_tick()
        assert len(engine.fulfilled) == 2

        engine.reset()
        assert _ids(engine.pending) == _ids(default_conditions())
        assert engine.fulfilled == []
        assert all(not c.fulfilled for c in engine.pending)

    def test_duplicate_default_ids(self):
        def dupes():
            return [
                Condition("x", "x", 1, TreeRef(Req.all())),
                Condition("x", "x", 1, TreeRef(Req.all())),
            ]

        engine = AchievementEngine(GameState(), _RecordingSink(), defaults=dupes)
        with pytest.raises(ValueError):
            engine.setup_default_conditions()

    def test_add_missing_defaults(self):
        engine, _, _ = _make_engine()
        engine.deserialize({"pendingConditions": [engine.pending[0].to_record()]})
        added = engine.add_missing_defaults()
        assert _ids(added) == ["pop100", "food200", "pop1000", "builder"]
        assert _ids(engine.pending) == _ids(default_conditions())
        assert engine.add_missing_defaults() == []


# ── Tick ─────────────────────────────────────────────────────────────


class TestTick:
    def test_population_scenario(self):
        engine, state, sink = _make_engine()
        state.population = 9
        assert engine.on_tick() == []
        assert "pop10" in _ids(engine.pending)

        state.population = 10
        granted = engine.on_tick()
        assert _ids(granted) == ["pop10"]
        assert sink.points == [1]
        assert sink.messages == ["You gain 1 culture point by 10 population!"]
        assert _ids(engine.fulfilled) == ["pop10"]
        assert engine.fulfilled[0].fulfilled

        assert engine.on_tick() == []
        assert sink.points == [1]
        assert len(sink.messages) == 1

    def test_multiple_fulfilled_in_one_tick(self):
        engine, state, sink = _make_engine(defaults=_two_food_conditions)
        state.set_quantity("food", 10)

        granted = engine.on_tick()
        assert _ids(granted) == ["a", "b"]
        assert sink.points == [1, 2]
        assert _ids(engine.fulfilled) == ["a", "b"]
        assert _ids(engine.pending) == ["c"]

    def test_adjacent_removals_are_not_skipped(self):
        def adjacent():
            return [
                Condition(str(i), f"cond {i}", 1, TreeRef(Req.resource("food", 1)))
                for i in range(6)
            ]

        engine, state, sink = _make_engine(defaults=adjacent)
        state.set_quantity("food", 1)
        engine.on_tick()
        assert engine.pending == []
        assert _ids(engine.fulfilled) == ["0", "1", "2", "3", "4", "5"]
        assert len(sink.points) == 6

    def test_fulfilled_keeps_grant_order(self):
        engine, state, _ = _make_engine()
        state.set_quantity("food", 200)
        engine.on_tick()
        state.population = 100
        engine.on_tick()
        assert _ids(engine.fulfilled) == ["food200", "pop10", "pop100"]

    def test_monotonic_after_state_drops(self):
        engine, state, sink = _make_engine()
        state.population = 1000
        engine.on_tick()
        fulfilled = _ids(engine.fulfilled)

        state.population = 0
        for _ in range(5):
            engine.on_tick()
        assert _ids(engine.fulfilled) == fulfilled
        assert len(sink.points) == 3

    def test_explicit_state_overrides_default(self):
        engine, state, _ = _make_engine()
        state.population = 0
        granted = engine.on_tick(GameState(population=10))
        assert _ids(granted) == ["pop10"]

    def test_partition_holds_throughout(self):
        engine, state, _ = _make_engine()
        all_ids = _ids(default_conditions())
        for pop in (0, 10, 50, 100, 1000):
            state.population = pop
            engine.on_tick()
            _assert_partition(engine, all_ids)
        state.set_quantity("barn", 1)
        state.set_quantity("woodstock", 1)
        engine.on_tick()
        _assert_partition(engine, all_ids)
        assert _ids(engine.pending) == ["food200"]

    def test_failing_sink_never_grants_twice(self):
        class Boom(_RecordingSink):
            def notify(self, message):
                raise RuntimeError("notification backend down")

        state = GameState(population=10)
        sink = Boom()
        engine = AchievementEngine(state, sink)
        engine.setup_default_conditions()
        with pytest.raises(RuntimeError):
            engine.on_tick()
        assert _ids(engine.fulfilled) == ["pop10"]
        engine.on_tick()
        assert sink.points == [1]

    def test_missing_collections_are_fatal(self):
        engine, _, _ = _make_engine()
        engine._pending = None
        with pytest.raises(InternalInvariantViolation) as exc:
            engine.on_tick()
        assert "reset the game" in str(exc.value)

    def test_overlap_is_fatal(self):
        engine, state, _ = _make_engine()
        state.population = 10
        engine.on_tick()
        engine._pending.append(engine._fulfilled[0])
        with pytest.raises(InternalInvariantViolation):
            engine.on_tick()

    def test_flag_mismatch_is_fatal(self):
        engine, _, _ = _make_engine()
        engine._pending[0].fulfilled = True
        with pytest.raises(InternalInvariantViolation):
            engine.check_invariants()


# ── Subscription lifecycle ───────────────────────────────────────────


class TestLifecycle:
    def test_init_subscribes_once(self):
        state = GameState(population=10)
        sink = _RecordingSink()
        events = EventBus()
        engine = AchievementEngine(state, sink)
        engine.init(events)
        engine.init(events)
        assert events.subscriber_count("global.tick") == 1

        events.publish("global.tick")
        events.publish("global.tick")
        assert sink.points == [1]

    def test_init_sets_up_defaults_for_fresh_game(self):
        engine = AchievementEngine(GameState(), _RecordingSink())
        engine.init(EventBus())
        assert len(engine.pending) == 5

    def test_init_keeps_loaded_progress(self):
        engine, state, _ = _make_engine()
        state.population = 10
        engine.on_tick()
        saved = engine.serialize()

        fresh = AchievementEngine(GameState(), _RecordingSink())
        fresh.deserialize(saved)
        fresh.init(EventBus())
        assert _ids(fresh.fulfilled) == ["pop10"]

    def test_unload_stops_ticks(self):
        state = GameState()
        sink = _RecordingSink()
        events = EventBus()
        engine = AchievementEngine(state, sink)
        engine.init(events)
        engine.unload()
        engine.unload()
        assert not engine.subscribed
        assert events.subscriber_count("global.tick") == 0

        state.population = 10
        events.publish("global.tick")
        assert sink.points == []

    def test_reload_does_not_duplicate_grants(self):
        state = GameState()
        sink = _RecordingSink()
        events = EventBus()
        engine = AchievementEngine(state, sink)
        engine.init(events)
        engine.unload()
        engine.init(events)
        state.population = 10
        events.publish("global.tick")
        assert sink.points == [1]

    def test_reload_after_grant_keeps_progress(self):
        state = GameState(population=10)
        sink = _RecordingSink()
        events = EventBus()
        engine = AchievementEngine(state, sink)
        engine.init(events)
        events.publish("global.tick")
        assert sink.points == [1]

        engine.unload()
        engine.init(events)
        events.publish("global.tick")
        assert sink.points == [1]
        assert _ids(engine.fulfilled) == ["pop10"]

    def test_init_after_reset_starts_fresh(self):
        state = GameState(population=10)
        sink = _RecordingSink()
        events = EventBus()
        engine = AchievementEngine(state, sink)
        engine.init(events)
        events.publish("global.tick")
        engine.unload()

        engine.reset()
        engine.init(events)
        assert len(engine.pending) == 5
        events.publish("global.tick")
        assert sink.points == [1, 1]

    def test_custom_tick_topic(self):
        state = GameState(population=10)
        sink = _RecordingSink()
        events = EventBus()
        engine = AchievementEngine(state, sink, config=EngineConfig(tick_topic="clock"))
        engine.init(events)
        events.publish("global.tick")
        assert sink.points == []
        events.publish("clock")
        assert sink.points == [1]

    def test_with_ledger_credits_culture(self):
        state = GameState(population=100)
        engine = AchievementEngine.with_ledger(state)
        engine.setup_default_conditions()
        engine.on_tick()
        assert state.quantity_of("culture") == 3
        assert len(engine.sink.messages) == 2


# ── Persistence ──────────────────────────────────────────────────────


class TestSerialize:
    def test_layout(self):
        engine, state, _ = _make_engine()
        state.population = 10
        engine.on_tick()
        data = engine.serialize()
        assert set(data) == {"pendingConditions", "fulfilledConditions"}
        assert data["fulfilledConditions"] == [
            {
                "id": "pop10",
                "description": "10 population",
                "rewardPoints": 1,
                "predicateRef": {"kind": "registry", "id": "population>=10"},
                "fulfilled": True,
            }
        ]
        assert len(data["pendingConditions"]) == 4

    def test_round_trip(self):
        engine, state, _ = _make_engine()
        state.set_quantity("food", 200)
        engine.on_tick()
        state.population = 10
        engine.on_tick()

        other = AchievementEngine(GameState(), _RecordingSink())
        other.deserialize(engine.serialize())
        assert _ids(other.pending) == _ids(engine.pending)
        assert _ids(other.fulfilled) == _ids(engine.fulfilled)
        assert [c.fulfilled for c in other.conditions()] == [
            c.fulfilled for c in engine.conditions()
        ]
        assert other.serialize() == engine.serialize()
        assert other.loaded

    def test_loaded_registry_conditions_still_work(self):
        engine, _, _ = _make_engine()
        state = GameState(population=10)
        other = AchievementEngine(state, _RecordingSink())
        other.deserialize(engine.serialize())
        assert _ids(other.on_tick()) == ["pop10"]

    def test_unknown_registry_id_is_dropped(self, caplog):
        engine, _, _ = _make_engine()
        data = engine.serialize()
        data["pendingConditions"][1]["predicateRef"]["id"] = "population>=100000"

        other = AchievementEngine(GameState(), _RecordingSink())
        with caplog.at_level(logging.WARNING, logger="civculture.engine"):
            other.deserialize(data)
        assert _ids(other.pending) == ["pop10", "food200", "pop1000", "builder"]
        assert "population>=100000" in caplog.text

    def test_null_record_is_skipped(self, caplog):
        engine, state, _ = _make_engine()
        state.population = 10
        engine.on_tick()
        data = engine.serialize()
        data["fulfilledConditions"].append(None)

        other = AchievementEngine(GameState(), _RecordingSink())
        with caplog.at_level(logging.ERROR, logger="civculture.engine"):
            other.deserialize(data)
        assert _ids(other.fulfilled) == ["pop10"]
        assert "null" in caplog.text

    def test_missing_fulfilled_list(self):
        engine, _, _ = _make_engine()
        data = {"pendingConditions": engine.serialize()["pendingConditions"]}
        other = AchievementEngine(GameState(), _RecordingSink())
        other.deserialize(data)
        assert len(other.pending) == 5
        assert other.fulfilled == []

    def test_records_without_flag_take_list_membership(self):
        engine, state, _ = _make_engine()
        state.population = 10
        engine.on_tick()
        data = engine.serialize()
        for key in ("pendingConditions", "fulfilledConditions"):
            for record in data[key]:
                del record["fulfilled"]

        other = AchievementEngine(GameState(), _RecordingSink())
        other.deserialize(data)
        assert other.fulfilled[0].fulfilled
        other.check_invariants()

    def test_mismatched_flag_is_corrected(self, caplog):
        engine, _, _ = _make_engine()
        data = engine.serialize()
        data["pendingConditions"][0]["fulfilled"] = True

        other = AchievementEngine(GameState(), _RecordingSink())
        with caplog.at_level(logging.WARNING, logger="civculture.engine"):
            other.deserialize(data)
        assert not other.pending[0].fulfilled
        assert "correcting" in caplog.text

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            {},
            {"pendingConditions": None},
            {"pendingConditions": {}},
            {"pendingConditions": [], "fulfilledConditions": "pop10"},
            {"pendingConditions": ["pop10"]},
        ],
    )
    def test_malformed(self, data):
        engine, _, _ = _make_engine()
        with pytest.raises(MalformedPersistedState):
            engine.deserialize(data)

    def test_duplicate_ids_are_malformed(self):
        engine, _, _ = _make_engine()
        record = engine.serialize()["pendingConditions"][0]
        with pytest.raises(MalformedPersistedState):
            engine.deserialize(
                {"pendingConditions": [record], "fulfilledConditions": [dict(record)]}
            )

    def test_malformed_leaves_state_untouched(self):
        engine, state, _ = _make_engine()
        state.population = 10
        engine.on_tick()
        before = engine.serialize()

        good = before["pendingConditions"][0]
        with pytest.raises(MalformedPersistedState):
            engine.deserialize({"pendingConditions": [good, {"id": "broken"}]})
        assert engine.serialize() == before
        assert not engine.loaded

    def test_custom_registry(self):
        reg = default_registry()
        reg.register("has_culture", lambda s: s.quantity_of("culture") > 0)

        def conditions():
            return [Condition("cultured", "being cultured", 1, RegistryRef("has_culture"))]

        engine = AchievementEngine(GameState(), _RecordingSink(), registry=reg, defaults=conditions)
        engine.setup_default_conditions()
        data = engine.serialize()

        other = AchievementEngine(GameState({"culture": 1}), _RecordingSink(), registry=reg)
        other.deserialize(data)
        assert _ids(other.on_tick()) == ["cultured"]

        stranger = AchievementEngine(GameState(), _RecordingSink())
        stranger.deserialize(data)
        assert stranger.conditions() == []
