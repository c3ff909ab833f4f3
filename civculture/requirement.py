from __future__ import annotations

import numbers
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

from civculture.errors import MalformedPersistedState

if TYPE_CHECKING:
    from civculture._types import GameStateView


class RequirementKind(Enum):
    """What a leaf threshold counts: a stockpiled resource or an owned tool/building."""

    RESOURCE = "resource"
    TOOL = "tool"


class _Composable:
    """Shared behavior for every requirement variant."""

    def is_fulfilled(self, state: GameStateView) -> bool:
        return evaluate(self, state)  # type: ignore[arg-type]

    def __and__(self, other: Requirement) -> Requirement:
        return AllOf((self, other))  # type: ignore[arg-type]

    def __or__(self, other: Requirement) -> Requirement:
        return AnyOf((self, other))  # type: ignore[arg-type]


@dataclass(frozen=True)
class Leaf(_Composable):
    """Owned quantity of ``target_id`` must be at least ``threshold``."""

    kind: RequirementKind
    target_id: str
    threshold: float

    def __post_init__(self) -> None:
        if not isinstance(self.kind, RequirementKind):
            raise TypeError(f"Leaf kind must be a RequirementKind, got {self.kind!r}")
        if not isinstance(self.target_id, str) or not self.target_id:
            raise TypeError(f"Leaf target_id must be a non-empty string, got {self.target_id!r}")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, numbers.Real):
            raise TypeError(f"Leaf threshold must be a number, got {self.threshold!r}")


@dataclass(frozen=True)
class AllOf(_Composable):
    """AND combinator. Vacuously true with no children."""

    children: tuple[Requirement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", _check_children(self.children))


@dataclass(frozen=True)
class AnyOf(_Composable):
    """OR combinator. Vacuously false with no children."""

    children: tuple[Requirement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", _check_children(self.children))


Requirement = Leaf | AllOf | AnyOf


def _check_children(children: Any) -> tuple[Requirement, ...]:
    children = tuple(children)
    for child in children:
        if not isinstance(child, (Leaf, AllOf, AnyOf)):
            raise TypeError(f"Requirement children must be requirements, got {child!r}")
    return children


# ── Evaluation ───────────────────────────────────────────────────────


def evaluate(req: Requirement, state: GameStateView) -> bool:
    """Walk the tree and decide whether *state* satisfies *req*.

    Every child is evaluated, even once the outcome is known. Leaves are
    pure, so this only matters for predicates that count their calls.
    """
    if isinstance(req, Leaf):
        return (state.quantity_of(req.target_id) or 0) >= req.threshold
    if isinstance(req, AllOf):
        results = [evaluate(child, state) for child in req.children]
        return all(results)
    if isinstance(req, AnyOf):
        results = [evaluate(child, state) for child in req.children]
        return any(results)
    raise TypeError(f"Not a requirement: {req!r}")


# ── Literal codec ────────────────────────────────────────────────────


def to_literal(req: Requirement) -> dict[str, Any]:
    """Plain-data form of a requirement tree, safe to store in a save file."""
    if isinstance(req, Leaf):
        return {"kind": req.kind.value, "id": req.target_id, "threshold": req.threshold}
    if isinstance(req, AllOf):
        return {"kind": "and", "children": [to_literal(c) for c in req.children]}
    if isinstance(req, AnyOf):
        return {"kind": "or", "children": [to_literal(c) for c in req.children]}
    raise TypeError(f"Not a requirement: {req!r}")


def from_literal(data: Any) -> Requirement:
    """Rebuild a requirement tree from :func:`to_literal` output."""
    if not isinstance(data, Mapping):
        raise MalformedPersistedState(f"Requirement literal must be an object, got {data!r}")

    kind = data.get("kind")
    if kind in ("and", "or"):
        children = data.get("children", [])
        if not isinstance(children, list):
            raise MalformedPersistedState(
                f"Requirement {kind!r} children must be a list, got {children!r}"
            )
        built = tuple(from_literal(c) for c in children)
        return AllOf(built) if kind == "and" else AnyOf(built)

    try:
        leaf_kind = RequirementKind(kind)
    except ValueError:
        raise MalformedPersistedState(f"Unknown requirement kind: {kind!r}") from None

    try:
        return Leaf(leaf_kind, data.get("id"), data.get("threshold"))
    except TypeError as e:
        raise MalformedPersistedState(str(e)) from e


# ── Display ──────────────────────────────────────────────────────────


def _format_amount(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def describe(req: Requirement) -> str:
    """Human-readable requirement text, e.g. ``"10 wood and 1 barn"``."""
    if isinstance(req, Leaf):
        return f"{_format_amount(req.threshold)} {req.target_id}"

    joiner = " and " if isinstance(req, AllOf) else " or "
    if not req.children:
        return "nothing" if isinstance(req, AllOf) else "impossible"

    parts = []
    for child in req.children:
        text = describe(child)
        if not isinstance(child, Leaf) and len(child.children) > 1:
            text = f"({text})"
        parts.append(text)
    return joiner.join(parts)


# ── Public factory ───────────────────────────────────────────────────


class Req:
    """Factory for requirement trees."""

    @staticmethod
    def resource(resource_id: str, threshold: float) -> Requirement:
        return Leaf(RequirementKind.RESOURCE, resource_id, threshold)

    @staticmethod
    def tool(tool_id: str, threshold: float = 1) -> Requirement:
        return Leaf(RequirementKind.TOOL, tool_id, threshold)

    @staticmethod
    def all(*reqs: Requirement) -> Requirement:
        return AllOf(reqs)

    @staticmethod
    def any(*reqs: Requirement) -> Requirement:
        return AnyOf(reqs)
