from dataclasses import dataclass
from enum import StrEnum

from minigames.errors import UnknownLevelError


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Platform colour -> chord played on landing
COLOR_TO_CHORD = {
    "#4ECDC4": "Cmaj7",
    "#FF6B6B": "Am7",
    "#FFD93D": "G",
    "#95E1D3": "Fmaj7",
    "#FFA07A": "Dm7",
}

C, AM, G, F, DM = "#4ECDC4", "#FF6B6B", "#FFD93D", "#95E1D3", "#FFA07A"


@dataclass(frozen=True)
class Song:
    id: int
    name: str
    description: str
    chord_sequence: tuple[str, ...]  # platform colours, in order
    bpm: int
    difficulty: Difficulty

    @property
    def beat_seconds(self) -> float:
        return 60 / self.bpm


SONGS = (
    Song(1, "Classic Progression", "The classic C-Am-F-G", (C, AM, F, G), 120, Difficulty.EASY),
    Song(2, "Twinkle Twinkle", "C-C-G-G-F-F-G", (C, C, G, G, F, F, G), 100, Difficulty.EASY),
    Song(3, "Canon Progression", "C-Dm-Am-G-F-G-Am-G", (C, DM, AM, G, F, G, AM, G), 110, Difficulty.MEDIUM),
    Song(4, "Pop Progression", "I-V-vi-IV", (C, G, AM, F), 130, Difficulty.EASY),
    Song(5, "Romantic Progression", "A gentle mix of chords", (C, DM, F, G, AM, F, G, C), 90, Difficulty.MEDIUM),
)


def get_song(song_id: int) -> Song:
    for song in SONGS:
        if song.id == song_id:
            return song
    raise UnknownLevelError("song", song_id)
