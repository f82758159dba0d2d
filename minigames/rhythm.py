from __future__ import annotations

import math
from dataclasses import dataclass, replace

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
from loguru import logger

from minigames.base import ArcadeEnv
from minigames.config import RhythmConfig
from minigames.effects import EffectKind
from minigames.input_state import NO_INPUT
from minigames.rhythm_levels import Accuracy, Note, RhythmLevel, get_level
from minigames.state import GameState


@dataclass(frozen=True)
class RhythmStats:
    perfect: int = 0
    great: int = 0
    good: int = 0
    miss: int = 0

    @property
    def hits(self) -> int:
        return self.perfect + self.great + self.good

    @property
    def total(self) -> int:
        return self.hits + self.miss


@dataclass(frozen=True)
class RhythmSnapshot:
    state: GameState
    level: RhythmLevel | None
    current_time: float
    score: float
    combo: int
    max_combo: int
    notes: tuple[Note, ...]
    stats: RhythmStats
    accuracy: float
    rank: str
    width: float
    height: float
    high_score: float


class RhythmEnv(ArcadeEnv):
    """Tap A/S/D/F as notes reach the judgement line.

    Time is measured on the engine clock from `start()`, so pausing and
    resuming does not skip notes. Presses are judged against the nearest
    unhit note of the same key; a press with no note in range only breaks
    the combo.
    """

    GAME_KEY = "rhythm"

    user_guide = "Controls: press A, S, D and F in time with the notes."
    game_description = "Hit each note as close to its beat as possible. Misses break the combo."
    auto_advance = True

    def __init__(
        self,
        config: RhythmConfig | None = None,
        width=None,
        height=None,
        clock=None,
        high_scores=None,
        level_id: int | None = None,
    ):
        super().__init__(config or RhythmConfig(), width, height, clock, high_scores)

        # One pressed flag per key
        self.action_space = MultiDiscrete([2] * len(self.config.keys))
        # current_time, combo, accuracy, then seconds until the next note of each key (-1 if none)
        self.observation_space = gym.spaces.Box(
            low=-np.inf, high=np.inf, shape=(3 + len(self.config.keys),), dtype=np.float32
        )

        self.level: RhythmLevel | None = None

        # Initialized in reset()
        self.notes: list[Note] = []
        self.current_time = 0.0
        self.start_time = 0.0
        self.combo = 0
        self.max_combo = 0
        self.stats = RhythmStats()
        self.accuracy = 100.0
        self._beats_emitted = 0

        self.reset()
        if level_id is not None:
            self.load_level(level_id)

    def load_level(self, level_id: int) -> RhythmLevel:
        """Select a level and return to the menu. Raises UnknownLevelError."""
        self.level = get_level(level_id)
        self.reset()
        logger.info(f"rhythm: loaded level {self.level.id} '{self.level.name}' ({len(self.level.notes)} notes)")
        return self.level

    def _reset_world(self):
        # Notes are frozen, so a shallow copy of the level's tuple is a fresh run
        self.notes = list(self.level.notes) if self.level is not None else []
        self.current_time = 0.0
        self.start_time = 0.0
        self.combo = 0
        self.max_combo = 0
        self.stats = RhythmStats()
        self.accuracy = 100.0
        self._beats_emitted = 0

    def _can_start(self):
        if self.level is None:
            logger.warning("rhythm: no level loaded, ignoring start")
            return False
        return True

    def _on_start(self, now):
        self.start_time = now
        self.current_time = 0.0

    def _on_pause(self, now):
        self.current_time = now - self.start_time

    def _on_resume(self, now, paused_for):
        self.start_time = now - self.current_time

    # --- Judging ---

    def press_key(self, key: str) -> Accuracy | None:
        """Judge a key press. Returns the accuracy, or None if no note was in range."""
        if self.state is not GameState.PLAYING:
            return None
        cfg = self.config
        key = key.upper()
        self.current_time = self.clock.now() - self.start_time
        current_ms = self.current_time * 1000

        closest = None
        closest_distance = math.inf
        for i, note in enumerate(self.notes):
            if note.hit or note.key != key:
                continue
            distance = abs(current_ms - note.time * 1000)
            # Strict comparison: on a tie the earlier note in the level wins
            if distance <= cfg.good_ms and distance < closest_distance:
                closest = i
                closest_distance = distance

        if closest is None:
            self.combo = 0
            self.emit(EffectKind.KEY_MISS, key=key)
            self._publish()
            return None

        if closest_distance <= cfg.perfect_ms:
            accuracy, base = Accuracy.PERFECT, cfg.perfect_points
        elif closest_distance <= cfg.great_ms:
            accuracy, base = Accuracy.GREAT, cfg.great_points
        else:
            accuracy, base = Accuracy.GOOD, cfg.good_points

        note = replace(self.notes[closest], hit=True, accuracy=accuracy)
        self.notes[closest] = note

        points = base * (1 + self.combo * cfg.combo_bonus)
        self.score += points
        self.combo += 1
        self.max_combo = max(self.max_combo, self.combo)
        self.stats = replace(self.stats, **{accuracy.value: getattr(self.stats, accuracy.value) + 1})
        self._update_accuracy()

        self.emit(
            EffectKind.NOTE_HIT,
            key=key,
            note_id=note.id,
            accuracy=accuracy,
            offset_ms=closest_distance,
            points=points,
            combo=self.combo,
        )
        self._publish()
        return accuracy

    def _tick(self, inp):
        self.current_time = self.clock.now() - self.start_time
        self._mark_missed()
        self._emit_beats()

        if self.current_time >= self.level.duration:
            self._end_run(
                "finish",
                EffectKind.RHYTHM_FINISHED,
                rank=self.rank,
                accuracy=self.accuracy,
                max_combo=self.max_combo,
            )

    def _mark_missed(self):
        current_ms = self.current_time * 1000
        missed = 0
        for i, note in enumerate(self.notes):
            if note.hit or current_ms <= note.time * 1000 + self.config.good_ms:
                continue
            self.notes[i] = replace(note, hit=True, accuracy=Accuracy.MISS)
            self.combo = 0
            missed += 1
            self.emit(EffectKind.NOTE_MISSED, key=note.key, note_id=note.id)
            # sfx: miss

        if missed:
            self.stats = replace(self.stats, miss=self.stats.miss + missed)
            self._update_accuracy()

    def _emit_beats(self):
        beat = self.level.beat_seconds
        while True:
            at = self._beats_emitted * beat
            if at > self.current_time or at >= self.level.duration:
                break
            self.emit(
                EffectKind.BEAT,
                beat=self._beats_emitted,
                accent=self._beats_emitted % self.config.beats_per_bar == 0,
            )
            self._beats_emitted += 1

    def _update_accuracy(self):
        total = self.stats.total
        self.accuracy = 100.0 if total == 0 else self.stats.hits / total * 100

    @property
    def rank(self) -> str:
        ratio = self.accuracy / 100
        for name, threshold in self.config.ranks:
            if ratio >= threshold:
                return name
        return self.config.ranks[-1][0]

    # --- Views ---

    def _apply_action(self, action):
        for key, pressed in zip(self.config.keys, action):
            if int(pressed) == 1:
                self.press_key(key)
        return NO_INPUT

    def snapshot(self) -> RhythmSnapshot:
        return RhythmSnapshot(
            state=self.state,
            level=self.level,
            current_time=self.current_time,
            score=self.score,
            combo=self.combo,
            max_combo=self.max_combo,
            notes=tuple(self.notes),
            stats=self.stats,
            accuracy=self.accuracy,
            rank=self.rank,
            width=self.width,
            height=self.height,
            high_score=self.high_score,
        )

    def _get_observation(self):
        upcoming = []
        for key in self.config.keys:
            times = [n.time for n in self.notes if not n.hit and n.key == key]
            upcoming.append(min(times) - self.current_time if times else -1.0)
        return np.array([self.current_time, self.combo, self.accuracy, *upcoming], dtype=np.float32)

    def _get_info(self):
        info = super()._get_info()
        info.update({"combo": self.combo, "accuracy": self.accuracy, "rank": self.rank})
        return info
