from __future__ import annotations

import argparse
import logging
import sys

from civculture.config import EngineConfig
from civculture.engine import AchievementEngine
from civculture.errors import CultureError
from civculture.formatting import format_culture_report
from civculture.persistence import JsonFileStore
from civculture.state import GameState


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="civculture",
        description="civculture: culture point tracking for CivClicker saves",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    status = sub.add_parser("status", help="Show culture progress in a save")
    status.add_argument("--save", default=None, help="Save file path")

    tick = sub.add_parser("tick", help="Apply game facts and run ticks")
    tick.add_argument("--save", default=None, help="Save file path")
    tick.add_argument("--population", type=int, default=0, help="Living population")
    tick.add_argument(
        "--set",
        dest="quantities",
        action="append",
        default=[],
        metavar="ID=QTY",
        help="Owned quantity of a resource or building (repeatable)",
    )
    tick.add_argument("--ticks", type=int, default=1, help="Number of ticks to run")

    reset = sub.add_parser("reset", help="Reset culture progress in a save")
    reset.add_argument("--save", default=None, help="Save file path")

    return parser


def parse_quantities(items: list[str]) -> dict[str, float]:
    """Parse ``id=qty`` pairs."""
    result: dict[str, float] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected ID=QTY, got {item!r}")
        try:
            result[key] = float(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"Quantity for {key!r} is not a number: {value!r}") from None
    return result


def new_engine(
    save_path: str | None, state: GameState
) -> tuple[AchievementEngine, JsonFileStore]:
    """Build an engine for *state* and the store for *save_path*, without loading."""
    config = EngineConfig()
    if save_path:
        config.save_path = save_path
    engine = AchievementEngine.with_ledger(state, config)
    return engine, JsonFileStore(config.save_path)


def load_engine(
    save_path: str | None, state: GameState
) -> tuple[AchievementEngine, JsonFileStore]:
    """Build an engine for *state* and load the save at *save_path* if present."""
    engine, store = new_engine(save_path, state)
    if store.load(engine):
        engine.add_missing_defaults()
    else:
        engine.setup_default_conditions()
    return engine, store


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        _run(args, parser)
    except CultureError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    state = GameState()

    if args.command == "status":
        engine, _ = load_engine(args.save, state)
        print(format_culture_report(engine, state))

    elif args.command == "tick":
        try:
            quantities = parse_quantities(args.quantities)
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))
        engine, store = load_engine(args.save, state)
        state.population = args.population
        state.quantities.update(quantities)

        granted = []
        for _ in range(max(args.ticks, 0)):
            granted.extend(engine.on_tick())
        store.save(engine)

        if granted:
            for cond in granted:
                print(cond.message())
        else:
            print("No new culture conditions fulfilled.")

    elif args.command == "reset":
        # The old save is never read, so a corrupt one can still be replaced
        engine, store = new_engine(args.save, state)
        engine.reset()
        store.save(engine)
        print(f"Culture progress reset ({len(engine.pending)} conditions pending).")


if __name__ == "__main__":
    main()
