# civculture — Prerequisite Evaluation & Culture Point Tracking for CivClicker

from civculture._types import GameStateView, Predicate, RewardSink
from civculture.errors import (
    CultureError,
    UnknownConditionId,
    MalformedPersistedState,
    InternalInvariantViolation,
)
from civculture.requirement import (
    RequirementKind,
    Requirement,
    Leaf,
    AllOf,
    AnyOf,
    Req,
    evaluate,
    describe,
    to_literal,
    from_literal,
)
from civculture.registry import ConditionRegistry
from civculture.condition import Condition, PredicateRef, TreeRef, RegistryRef
from civculture.defaults import default_registry, default_conditions, default_buildings
from civculture.config import EngineConfig
from civculture.state import GameState
from civculture.rewards import CultureLedger
from civculture.events import EventBus, Subscription
from civculture.engine import AchievementEngine
from civculture.building import BuildingDef, try_purchase
from civculture.persistence import JsonFileStore
from civculture.formatting import format_culture_report

__all__ = [
    # Types
    "GameStateView",
    "Predicate",
    "RewardSink",
    # Errors
    "CultureError",
    "UnknownConditionId",
    "MalformedPersistedState",
    "InternalInvariantViolation",
    # Requirements
    "RequirementKind",
    "Requirement",
    "Leaf",
    "AllOf",
    "AnyOf",
    "Req",
    "evaluate",
    "describe",
    "to_literal",
    "from_literal",
    # Conditions
    "ConditionRegistry",
    "Condition",
    "PredicateRef",
    "TreeRef",
    "RegistryRef",
    # Built-in content
    "default_registry",
    "default_conditions",
    "default_buildings",
    # Runtime
    "EngineConfig",
    "GameState",
    "CultureLedger",
    "EventBus",
    "Subscription",
    "AchievementEngine",
    # Purchase gate
    "BuildingDef",
    "try_purchase",
    # Persistence
    "JsonFileStore",
    # Formatting
    "format_culture_report",
]
