from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from loguru import logger


class HighScoreStore(Protocol):
    def get_high_score(self, key: str) -> float:
        ...

    def set_high_score(self, key: str, value: float) -> None:
        ...


class MemoryHighScoreStore:
    def __init__(self, scores: dict[str, float] | None = None):
        self._scores: dict[str, float] = dict(scores or {})

    def get_high_score(self, key: str) -> float:
        return self._scores.get(key, 0)

    def set_high_score(self, key: str, value: float) -> None:
        self._scores[key] = value


class JsonHighScoreStore:
    """High scores kept as one small JSON object, e.g. {"breakout": 420}.

    A missing or unreadable file reads as no scores at all.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, float]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable high score file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, (int, float))}

    def get_high_score(self, key: str) -> float:
        return self._load().get(key, 0)

    def set_high_score(self, key: str, value: float) -> None:
        scores = self._load()
        scores[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(scores, indent=2, sort_keys=True), encoding="utf-8")
