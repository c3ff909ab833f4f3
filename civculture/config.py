from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EngineConfig:
    """Top-level culture engine configuration."""

    name: str = "CivClicker"
    tick_topic: str = "global.tick"
    reward_currency: str = "culture"
    save_path: str = "civculture-save.json"
