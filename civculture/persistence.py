from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from civculture.errors import MalformedPersistedState

if TYPE_CHECKING:
    from civculture.engine import AchievementEngine

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Saves culture progress as a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, engine: AchievementEngine) -> None:
        data = engine.serialize()
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        os.replace(tmp, self.path)
        logger.debug("Saved culture progress to %s", self.path)

    def load(self, engine: AchievementEngine) -> bool:
        """Load the save into *engine*. Returns False if there is no save yet."""
        if not self.exists():
            return False
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedPersistedState(f"{self.path} is not valid JSON: {e}") from e
        engine.deserialize(data)
        logger.debug("Loaded culture progress from %s", self.path)
        return True

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
