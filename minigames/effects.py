from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping

from loguru import logger


class EffectKind(StrEnum):
    # breakout
    BRICK_DESTROYED = "brick_destroyed"
    PADDLE_HIT = "paddle_hit"
    LEVEL_COMPLETE = "level_complete"
    LIFE_LOST = "life_lost"
    # catching
    FRUIT_CAUGHT = "fruit_caught"
    FRUIT_MISSED = "fruit_missed"
    # jumping
    METEOR = "meteor"
    ENCOURAGEMENT = "encouragement"
    CHORD = "chord"
    SONG_COMPLETE = "song_complete"
    # rhythm
    NOTE_HIT = "note_hit"
    NOTE_MISSED = "note_missed"
    KEY_MISS = "key_miss"
    BEAT = "beat"
    RHYTHM_FINISHED = "rhythm_finished"
    # shooting
    TARGET_HIT = "target_hit"
    TARGET_EXPIRED = "target_expired"
    SHOT_MISSED = "shot_missed"
    # shared
    GAME_OVER = "game_over"
    VICTORY = "victory"


@dataclass(frozen=True)
class EffectEvent:
    """Something that just happened, for particles and sound. Not game state."""

    kind: EffectKind
    x: float = 0.0
    y: float = 0.0
    timestamp: float = 0.0
    payload: Mapping[str, Any] = field(default_factory=dict)


class EffectQueue:
    """Bounded drain-once queue. The presentation layer drains it every frame;
    if it stops draining, the oldest events are dropped."""

    def __init__(self, maxlen: int = 256):
        if maxlen <= 0:
            raise ValueError("maxlen must be > 0")
        self._events: deque[EffectEvent] = deque(maxlen=maxlen)
        self._overflowing = False

    def __len__(self):
        return len(self._events)

    @property
    def maxlen(self) -> int:
        return self._events.maxlen

    def push(self, event: EffectEvent) -> None:
        if len(self._events) == self._events.maxlen:
            if not self._overflowing:
                logger.warning(f"Effect queue full ({self.maxlen}), dropping oldest events until drained")
                self._overflowing = True
        self._events.append(event)

    def drain(self) -> list[EffectEvent]:
        events = list(self._events)
        self._events.clear()
        self._overflowing = False
        return events

    def clear(self) -> None:
        self._events.clear()
        self._overflowing = False
