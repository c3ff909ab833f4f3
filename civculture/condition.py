from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from civculture.errors import InternalInvariantViolation, MalformedPersistedState
from civculture.requirement import Requirement, from_literal, to_literal

if TYPE_CHECKING:
    from civculture._types import GameStateView, Predicate
    from civculture.registry import ConditionRegistry


@dataclass(frozen=True)
class TreeRef:
    """Predicate described entirely as data by a requirement tree."""

    tree: Requirement

    def to_literal(self) -> dict[str, Any]:
        return {"kind": "tree", "tree": to_literal(self.tree)}


@dataclass(frozen=True)
class RegistryRef:
    """Predicate looked up by id in a :class:`ConditionRegistry`."""

    id: str

    def to_literal(self) -> dict[str, Any]:
        return {"kind": "registry", "id": self.id}


PredicateRef = TreeRef | RegistryRef


def ref_from_literal(data: Any) -> PredicateRef:
    if not isinstance(data, Mapping):
        raise MalformedPersistedState(f"predicateRef must be an object, got {data!r}")
    kind = data.get("kind")
    if kind == "tree":
        return TreeRef(from_literal(data.get("tree")))
    if kind == "registry":
        ref_id = data.get("id")
        if not isinstance(ref_id, str) or not ref_id:
            raise MalformedPersistedState(f"Registry predicateRef needs a string id, got {ref_id!r}")
        return RegistryRef(ref_id)
    raise MalformedPersistedState(f"Unknown predicateRef kind: {kind!r}")


@dataclass
class Condition:
    """A one-time goal that grants culture points when first met."""

    id: str
    description: str
    reward_points: float
    predicate_ref: PredicateRef
    fulfilled: bool = False
    _predicate: Predicate | None = field(default=None, init=False, repr=False, compare=False)

    def bind(self, registry: ConditionRegistry) -> Condition:
        """Resolve a registry ref. Raises UnknownConditionId if it is not registered."""
        if isinstance(self.predicate_ref, RegistryRef):
            self._predicate = registry.resolve(self.predicate_ref.id)
        return self

    def is_fulfilled(self, state: GameStateView) -> bool:
        if isinstance(self.predicate_ref, TreeRef):
            return self.predicate_ref.tree.is_fulfilled(state)
        if self._predicate is None:
            raise InternalInvariantViolation(f"condition {self.id!r} was never bound to a registry")
        return bool(self._predicate(state))

    def message(self) -> str:
        points = self.reward_points
        amount = str(int(points)) if float(points).is_integer() else f"{points:g}"
        noun = "culture point" if points == 1 else "culture points"
        return f"You gain {amount} {noun} by {self.description}!"

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "rewardPoints": self.reward_points,
            "predicateRef": self.predicate_ref.to_literal(),
            "fulfilled": self.fulfilled,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any], registry: ConditionRegistry) -> Condition:
        """Rebuild a condition from a save record and bind it to *registry*."""
        cond_id = data.get("id")
        if not isinstance(cond_id, str) or not cond_id:
            raise MalformedPersistedState(f"Condition record needs a string id, got {cond_id!r}")

        points = data.get("rewardPoints", 0)
        if isinstance(points, bool) or not isinstance(points, numbers.Real):
            raise MalformedPersistedState(
                f"Condition {cond_id!r} has non-numeric rewardPoints {points!r}"
            )

        if "predicateRef" not in data:
            raise MalformedPersistedState(f"Condition {cond_id!r} has no predicateRef")

        cond = cls(
            id=cond_id,
            description=str(data.get("description", cond_id)),
            reward_points=points,
            predicate_ref=ref_from_literal(data["predicateRef"]),
            fulfilled=bool(data.get("fulfilled", False)),
        )
        return cond.bind(registry)
