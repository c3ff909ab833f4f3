from __future__ import annotations

from typing import TYPE_CHECKING

from civculture.condition import RegistryRef
from civculture.requirement import describe

if TYPE_CHECKING:
    from civculture._types import GameStateView
    from civculture.condition import Condition
    from civculture.engine import AchievementEngine


def condition_requirement_text(cond: Condition) -> str:
    if isinstance(cond.predicate_ref, RegistryRef):
        return cond.predicate_ref.id
    return describe(cond.predicate_ref.tree)


def format_culture_report(engine: AchievementEngine, state: GameStateView) -> str:
    """Format culture progress for console output."""
    lines: list[str] = []
    fulfilled = engine.fulfilled
    pending = engine.pending

    lines.append("=" * 20 + f" {engine.config.name} Culture " + "=" * 20)
    earned = sum(cond.reward_points for cond in fulfilled)
    lines.append(f"Culture earned from conditions: {earned:g}")
    lines.append(f"Population: {state.population_living()}")
    lines.append("")

    lines.append(f"FULFILLED ({len(fulfilled)}):")
    for i, cond in enumerate(fulfilled, 1):
        lines.append(f"  {i}. {cond.description:.<36s} +{cond.reward_points:g}")
    lines.append("")

    lines.append(f"PENDING ({len(pending)}):")
    for cond in pending:
        lines.append(f"  - {cond.description:.<36s} needs {condition_requirement_text(cond)}")

    return "\n".join(lines)
