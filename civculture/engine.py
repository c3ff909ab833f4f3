from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping

from civculture.condition import Condition
from civculture.config import EngineConfig
from civculture.defaults import default_conditions, default_registry
from civculture.errors import (
    InternalInvariantViolation,
    MalformedPersistedState,
    UnknownConditionId,
)
from civculture.rewards import CultureLedger

if TYPE_CHECKING:
    from civculture._types import GameStateView, RewardSink
    from civculture.events import EventBus, Subscription
    from civculture.registry import ConditionRegistry
    from civculture.state import GameState

logger = logging.getLogger(__name__)


class AchievementEngine:
    """Grants culture points the first time each condition is met.

    Conditions live in exactly one of two ordered lists: ``pending`` (not yet
    met) and ``fulfilled`` (granted, in grant order). A condition only ever
    moves from pending to fulfilled.
    """

    def __init__(
        self,
        state: GameStateView,
        sink: RewardSink,
        registry: ConditionRegistry | None = None,
        defaults: Callable[[], list[Condition]] | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.state = state
        self.sink = sink
        self.registry = registry if registry is not None else default_registry()
        self.defaults = defaults if defaults is not None else default_conditions
        self.config = config or EngineConfig()

        self._pending: list[Condition] = []
        self._fulfilled: list[Condition] = []
        self._loaded = False
        self._initialized = False
        self._tick_sub: Subscription | None = None

    @classmethod
    def with_ledger(
        cls,
        state: GameState,
        config: EngineConfig | None = None,
        **kwargs: Any,
    ) -> AchievementEngine:
        """Engine whose rewards are credited to *state* by a CultureLedger."""
        config = config or EngineConfig()
        ledger = CultureLedger(state, currency=config.reward_currency)
        return cls(state, ledger, config=config, **kwargs)

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def pending(self) -> list[Condition]:
        return list(self._pending)

    @property
    def fulfilled(self) -> list[Condition]:
        return list(self._fulfilled)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def subscribed(self) -> bool:
        return self._tick_sub is not None and self._tick_sub.active

    def conditions(self) -> list[Condition]:
        return list(self._pending) + list(self._fulfilled)

    # ── Lifecycle ────────────────────────────────────────────────────

    def init(self, events: EventBus) -> None:
        """Set up (unless already set up or loaded) and start listening for ticks."""
        if self.subscribed:
            logger.debug("Culture engine already subscribed; ignoring init()")
            return
        if not self._initialized:
            self.setup_default_conditions()
        self._tick_sub = events.subscribe(self.config.tick_topic, self._handle_tick)

    def unload(self) -> None:
        if self._tick_sub is not None:
            self._tick_sub.remove()
            self._tick_sub = None

    def setup_default_conditions(self) -> None:
        """Replace all state with the built-in pending conditions."""
        conditions = [cond.bind(self.registry) for cond in self.defaults()]
        ids = [cond.id for cond in conditions]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate default condition ids: {ids}")
        for cond in conditions:
            cond.fulfilled = False
        self._pending = conditions
        self._fulfilled = []
        self._initialized = True

    def reset(self) -> None:
        """Discard all progress. Called by the full game reset."""
        self._loaded = False
        self.setup_default_conditions()

    def add_missing_defaults(self) -> list[Condition]:
        """Append default conditions absent from a loaded save to ``pending``."""
        known = {cond.id for cond in self.conditions()}
        added = [
            cond.bind(self.registry)
            for cond in self.defaults()
            if cond.id not in known
        ]
        self._pending.extend(added)
        return added

    # ── Tick ─────────────────────────────────────────────────────────

    def _handle_tick(self) -> None:
        self.on_tick()

    def on_tick(self, state: GameStateView | None = None) -> list[Condition]:
        """Grant every pending condition that holds. Returns those granted."""
        self.check_invariants()
        view = state if state is not None else self.state

        # Phase 1: evaluate everything against the same state
        newly = [cond for cond in self._pending if cond.is_fulfilled(view)]
        if not newly:
            return []

        # Phase 2: move, then reward
        done = {id(cond) for cond in newly}
        self._pending = [cond for cond in self._pending if id(cond) not in done]
        for cond in newly:
            cond.fulfilled = True
            self._fulfilled.append(cond)

        for cond in newly:
            self.sink.grant(cond.reward_points)
            self.sink.notify(cond.message())
        return newly

    def check_invariants(self) -> None:
        if not isinstance(self._pending, list) or not isinstance(self._fulfilled, list):
            raise InternalInvariantViolation("found no culture conditions")

        seen: set[str] = set()
        for expected, conditions in ((False, self._pending), (True, self._fulfilled)):
            for cond in conditions:
                if not isinstance(cond, Condition):
                    raise InternalInvariantViolation(f"corrupt culture condition {cond!r}")
                if cond.id in seen:
                    raise InternalInvariantViolation(
                        f"culture condition {cond.id!r} is tracked twice"
                    )
                if cond.fulfilled is not expected:
                    raise InternalInvariantViolation(
                        f"culture condition {cond.id!r} has fulfilled={cond.fulfilled} "
                        f"but sits in the {'fulfilled' if expected else 'pending'} list"
                    )
                seen.add(cond.id)

    # ── Persistence ──────────────────────────────────────────────────

    def serialize(self) -> dict[str, Any]:
        return {
            "pendingConditions": [cond.to_record() for cond in self._pending],
            "fulfilledConditions": [cond.to_record() for cond in self._fulfilled],
        }

    def deserialize(self, data: Any) -> None:
        """Replace state with a saved payload.

        Conditions whose registry id is no longer known are dropped with a
        warning. A malformed payload raises and leaves current state untouched.
        """
        if not isinstance(data, Mapping):
            raise MalformedPersistedState(f"Culture save must be an object, got {type(data).__name__}")

        pending_raw = data.get("pendingConditions")
        if not isinstance(pending_raw, list):
            raise MalformedPersistedState("Culture save has no pendingConditions list")
        fulfilled_raw = data.get("fulfilledConditions", [])
        if not isinstance(fulfilled_raw, list):
            raise MalformedPersistedState("Culture save fulfilledConditions is not a list")

        seen: set[str] = set()
        pending = self._load_records(pending_raw, "pendingConditions", False, seen)
        fulfilled = self._load_records(fulfilled_raw, "fulfilledConditions", True, seen)

        self._pending = pending
        self._fulfilled = fulfilled
        self._loaded = True
        self._initialized = True

    def _load_records(
        self,
        records: list[Any],
        key: str,
        fulfilled: bool,
        seen: set[str],
    ) -> list[Condition]:
        loaded: list[Condition] = []
        for pos, record in enumerate(records):
            if record is None:
                logger.error("Skipping null culture condition at %s[%d]", key, pos)
                continue
            if not isinstance(record, Mapping):
                raise MalformedPersistedState(f"{key}[{pos}] is not an object: {record!r}")

            try:
                cond = Condition.from_record(record, self.registry)
            except UnknownConditionId as e:
                logger.warning(
                    "Dropping culture condition %r: predicate %r is not registered",
                    record.get("id"),
                    e.condition_id,
                )
                continue

            if cond.id in seen:
                raise MalformedPersistedState(f"Culture condition {cond.id!r} appears twice")
            seen.add(cond.id)

            if "fulfilled" in record and cond.fulfilled is not fulfilled:
                logger.warning(
                    "Culture condition %r stored with fulfilled=%s in %s; correcting",
                    cond.id,
                    cond.fulfilled,
                    key,
                )
            cond.fulfilled = fulfilled
            loaded.append(cond)
        return loaded
