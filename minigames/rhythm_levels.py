from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from minigames.errors import UnknownLevelError

KEYS = ("A", "S", "D", "F")


class Accuracy(StrEnum):
    PERFECT = "perfect"
    GREAT = "great"
    GOOD = "good"
    MISS = "miss"


@dataclass(frozen=True)
class Note:
    id: int
    key: str
    time: float  # seconds from level start
    hit: bool = False
    accuracy: Accuracy | None = None


@dataclass(frozen=True)
class RhythmLevel:
    id: int
    name: str
    bpm: int
    duration: float
    notes: tuple[Note, ...]

    @property
    def beat_seconds(self) -> float:
        return 60 / self.bpm


def _runs(starts, spacing=0.5, keys=KEYS, last=None):
    """A/S/D/F runs beginning at each start time. `last` truncates the final run."""
    notes = []
    for i, start in enumerate(starts):
        run = keys if last is None or i < len(starts) - 1 else keys[:last]
        for j, key in enumerate(run):
            notes.append(Note(id=len(notes) + 1, key=key, time=round(start + j * spacing, 3)))
    return tuple(notes)


RHYTHM_LEVELS = (
    RhythmLevel(
        id=1,
        name="Warm-up",
        bpm=120,
        duration=30,
        notes=_runs([1.0, 3.0, 5.5, 8.0, 10.5, 13.0, 15.5, 18.0, 20.5, 23.0, 25.5, 28.0]),
    ),
    RhythmLevel(
        id=2,
        name="Challenge",
        bpm=140,
        duration=45,
        notes=_runs(
            [0.5, 2.5, 4.5, 7.0, 9.0, 11.5, 14.0, 16.5, 19.0, 21.5, 24.0, 26.5, 29.0, 31.5, 34.0, 36.5, 39.0, 41.5, 44.0],
            last=2,
        ),
    ),
)


def get_level(level_id: int) -> RhythmLevel:
    for level in RHYTHM_LEVELS:
        if level.id == level_id:
            return level
    raise UnknownLevelError("rhythm level", level_id)
