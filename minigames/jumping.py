from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, replace
from enum import StrEnum

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame
from loguru import logger

from minigames.base import ArcadeEnv
from minigames.config import JumpingConfig
from minigames.effects import EffectKind
from minigames.songs import COLOR_TO_CHORD, SONGS, Song, get_song
from minigames.state import GameState

# Refill upward once the topmost platform is within this many screens of the camera
REFILL_TRIGGER = 0.5
# Extra refill while falling fast in the upper half of the screen
FALLING_REFILL_SPEED = 2
FALLING_REFILL_TRIGGER = 1000


class JumpMode(StrEnum):
    FREE = "free"
    SONG = "song"
    CREATIVE = "creative"


@dataclass(frozen=True)
class Platform:
    id: int
    x: float
    y: float
    width: float
    height: float
    color: str
    scored: bool = False

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2


@dataclass(frozen=True)
class Player:
    x: float
    y: float
    width: float
    height: float
    vx: float
    vy: float
    on_ground: bool


@dataclass(frozen=True)
class JumpingSnapshot:
    state: GameState
    score: int
    player: Player
    platforms: tuple[Platform, ...]
    camera_y: float
    current_height: float
    max_height: float
    fall_distance: float
    game_time: float
    mode: JumpMode
    song: Song | None
    song_progress: int
    songs_completed: int
    recording: tuple[str, ...]
    width: float
    height: float
    high_score: float


class JumpingEnv(ArcadeEnv):
    """Endless jumper with procedurally generated platforms.

    The player lands on platforms only while falling, so platforms can be
    jumped through from below. Each landing plays the chord mapped to the
    platform colour; the musical modes build on that:

    - FREE: chords only.
    - SONG: landing on the next colour of the selected song advances it.
    - CREATIVE: landed colours are recorded for playback.
    """

    GAME_KEY = "jumping"

    user_guide = "Controls: ← and → to move, Space or ↑ to jump."
    game_description = "Climb as high as you can. Fall off the bottom of the screen and the run is over."
    auto_advance = True

    def __init__(
        self,
        config: JumpingConfig | None = None,
        width=None,
        height=None,
        clock=None,
        high_scores=None,
        mode: JumpMode = JumpMode.FREE,
    ):
        super().__init__(config or JumpingConfig(), width, height, clock, high_scores)

        self.action_space = MultiDiscrete([5, 2, 2])
        # x, y on screen, vx, vy, on_ground, offsets to the nearest platform above and below
        self.observation_space = gym.spaces.Box(low=-np.inf, high=np.inf, shape=(9,), dtype=np.float32)

        self.mode = JumpMode(mode)
        self.song: Song | None = SONGS[0] if self.mode is JumpMode.SONG else None
        self.recording: list[str] = []

        # Initialized in reset()
        self.player_pos = pygame.Vector2(0, 0)
        self.player_vel = pygame.Vector2(0, 0)
        self.on_ground = False
        self.can_jump = True
        self.platforms: list[Platform] = []
        self.camera_y = 0.0
        self.current_height = 0.0
        self.max_height = 0.0
        self.fall_distance = 0.0
        self.game_time = 0.0
        self.song_progress = 0
        self.songs_completed = 0
        self._was_on_ground = False
        self._ground_platform: Platform | None = None
        self._platform_ids = itertools.count(1)

        self.reset()

    def _reset_world(self):
        cfg = self.config
        platform_y = self.height - cfg.start_platform_offset
        start_y = platform_y - cfg.player_height

        self.player_pos = pygame.Vector2(self.width / 2 - cfg.player_width / 2, start_y)
        self.player_vel = pygame.Vector2(0, 0)
        self.on_ground = True
        self._was_on_ground = True
        self._ground_platform = None
        self.can_jump = True

        self.camera_y = 0.0
        self.current_height = -start_y
        self.max_height = 0.0
        self.fall_distance = 0.0
        self.game_time = 0.0
        self.song_progress = 0
        self.songs_completed = 0

        self._platform_ids = itertools.count(1)
        self.platforms = [
            self._new_platform(
                self.width / 2 - cfg.start_platform_width / 2,
                platform_y,
                cfg.start_platform_width,
                cfg.platform_colors[0],
            )
        ]
        self._generate_up_to(platform_y - cfg.initial_fill)

    # --- Modes ---

    def set_mode(self, mode: JumpMode) -> None:
        self.mode = JumpMode(mode)
        if self.mode is JumpMode.SONG and self.song is None:
            self.song = SONGS[0]
        self.song_progress = 0
        self._publish()

    def select_song(self, song_id: int) -> Song:
        """Switch to SONG mode with the given song. Raises UnknownLevelError."""
        self.song = get_song(song_id)
        self.mode = JumpMode.SONG
        self.song_progress = 0
        logger.info(f"jumping: song {self.song.id} '{self.song.name}' at {self.song.bpm} bpm")
        self._publish()
        return self.song

    def clear_recording(self) -> None:
        self.recording = []
        self._publish()

    def play_recording(self, bpm: float = 120) -> int:
        """Queue one chord per recorded colour, one beat apart. Returns how many were queued."""
        if bpm <= 0:
            raise ValueError("bpm must be > 0")
        beat = 60 / bpm
        queued = 0
        for i, color in enumerate(self.recording):
            chord = COLOR_TO_CHORD.get(color)
            if chord is None:
                continue
            self.emit(
                EffectKind.CHORD,
                chord=chord,
                color=color,
                duration=self.config.chord_beats * beat,
                offset=i * beat,
            )
            queued += 1
        return queued

    # --- Simulation ---

    def _tick(self, inp):
        cfg = self.config
        self.game_time += cfg.tick_seconds

        # Horizontal velocity comes straight from the intent
        self.player_vel.x = inp.horizontal * cfg.move_speed
        self.player_vel.y = min(self.player_vel.y + cfg.gravity, cfg.max_fall_speed)

        max_x = max(0.0, self.width - cfg.player_width)
        self.player_pos.x = max(0.0, min(self.player_pos.x + self.player_vel.x, max_x))

        self._move_vertically()
        self._handle_jump(inp.jump_held)
        self._update_camera()
        self._track_height()

        if self.on_ground and not self._was_on_ground and self._ground_platform is not None:
            self._on_landing(self._ground_platform)
        self._was_on_ground = self.on_ground

        self._score_platforms()
        self._ensure_platform_below()
        self._refill_platforms()
        self._prune_platforms()

        if self.player_pos.y > self.camera_y + self.height:
            self._end_run("lose", EffectKind.GAME_OVER, max_height=int(self.max_height))

    def _move_vertically(self):
        """Swept vertical move: split into sub-steps and stop at the first landing."""
        substeps = max(1, math.ceil(abs(self.player_vel.y) / self.config.substep_size))
        step = self.player_vel.y / substeps

        self.on_ground = False
        self._ground_platform = None
        for _ in range(substeps):
            prev_bottom = self.player_pos.y + self.config.player_height
            self.player_pos.y += step
            if self.player_vel.y < 0:
                continue
            platform = self._find_landing(prev_bottom)
            if platform is not None:
                self.player_pos.y = platform.y - self.config.player_height
                self.player_vel.y = 0
                self.on_ground = True
                self._ground_platform = platform
                break

    def _find_landing(self, prev_bottom):
        cfg = self.config
        left = self.player_pos.x
        right = left + cfg.player_width
        bottom = self.player_pos.y + cfg.player_height

        best = None
        for platform in self.platforms:
            if right <= platform.x or left >= platform.x + platform.width:
                continue
            if prev_bottom <= platform.y + cfg.landing_tolerance and bottom >= platform.y:
                if best is None or platform.y < best.y:
                    best = platform
        return best

    def _handle_jump(self, jump_held):
        # The latch only re-arms once the button is released
        if jump_held and self.can_jump and self.on_ground:
            self.player_vel.y = self.config.jump_speed
            self.on_ground = False
            self.can_jump = False
            # sfx: jump
        if not jump_held:
            self.can_jump = True

    def _update_camera(self):
        cfg = self.config
        target = self.player_pos.y - self.height * cfg.camera_offset_y
        self.camera_y += (target - self.camera_y) * cfg.camera_follow_speed

    def _track_height(self):
        current = -self.player_pos.y
        if current > self.max_height:
            self.max_height = current
            self.fall_distance = 0.0

        if current > self.current_height:
            self.current_height = current
            self.fall_distance = 0.0
        elif current < self.current_height:
            self.fall_distance += self.current_height - current
            self.current_height = current

    def _on_landing(self, platform):
        cfg = self.config

        if cfg.enable_effects and platform.color in cfg.meteor_colors:
            self.emit(EffectKind.METEOR, platform.center_x, platform.y, color=platform.color)

        if self.fall_distance > cfg.encourage_fall_distance:
            self.emit(
                EffectKind.ENCOURAGEMENT,
                self.player_pos.x + cfg.player_width / 2,
                self.player_pos.y + cfg.player_height / 2,
                fall_distance=self.fall_distance,
            )
            self.fall_distance = 0.0

        chord = COLOR_TO_CHORD.get(platform.color)
        if chord is not None:
            if self.mode is JumpMode.SONG and self.song is not None:
                duration = cfg.chord_beats * self.song.beat_seconds
            else:
                duration = cfg.free_chord_duration
            self.emit(EffectKind.CHORD, platform.center_x, platform.y, chord=chord, color=platform.color, duration=duration)

        if self.mode is JumpMode.SONG and self.song is not None:
            self._advance_song(platform.color)
        elif self.mode is JumpMode.CREATIVE:
            self.recording.append(platform.color)

    def _advance_song(self, color):
        sequence = self.song.chord_sequence
        if color != sequence[self.song_progress]:
            return
        self.song_progress += 1
        if self.song_progress >= len(sequence):
            self.songs_completed += 1
            self.song_progress = 0
            self.emit(
                EffectKind.SONG_COMPLETE,
                self.player_pos.x,
                self.player_pos.y,
                song_id=self.song.id,
                completed=self.songs_completed,
            )
            logger.info(f"jumping: song '{self.song.name}' completed ({self.songs_completed}x)")

    def _score_platforms(self):
        if not self.on_ground:
            return
        cfg = self.config
        left = self.player_pos.x
        right = left + cfg.player_width
        for i, platform in enumerate(self.platforms):
            if platform.scored:
                continue
            resting = abs(self.player_pos.y - (platform.y - cfg.player_height)) <= 1
            if resting and right > platform.x and left < platform.x + platform.width:
                self.platforms[i] = replace(platform, scored=True)
                self.score += cfg.points_per_platform

    # --- Platform generation ---

    def _new_platform(self, x, y, width, color) -> Platform:
        return Platform(
            id=next(self._platform_ids),
            x=x,
            y=y,
            width=width,
            height=self.config.platform_height,
            color=color,
        )

    def _random_color(self):
        colors = self.config.platform_colors
        return colors[int(self.np_random.integers(len(colors)))]

    def _overlaps(self, x, y, width) -> bool:
        threshold = self.config.overlap_threshold
        return any(
            abs(p.y - y) < threshold and not (x + width < p.x or x > p.x + p.width)
            for p in self.platforms
        )

    def _find_free_x(self, y, width):
        x = 0.0
        while x < self.width - width:
            if not self._overlaps(x, y, width):
                return x
            x += self.config.placement_step
        return None

    def _generate_up_to(self, max_y: float) -> int:
        """Stack platforms upward from the topmost one until `max_y` is reached."""
        if not self.platforms:
            return 0
        cfg = self.config

        top = min(self.platforms, key=lambda p: p.y)
        current_y = top.y
        last_center = top.center_x
        attempts = 0
        added = 0

        while current_y > max_y and attempts < cfg.max_generation_attempts:
            attempts += 1
            current_y -= self.np_random.uniform(cfg.min_gap, cfg.max_gap)
            width = self.np_random.uniform(cfg.platform_min_width, cfg.platform_max_width)

            # Stay within horizontal reach of the previous platform
            max_offset = max(0.0, min(cfg.max_jump_distance, self.width - width))
            x = last_center - width / 2 + (self.np_random.uniform() - 0.5) * max_offset * 0.8
            x = max(0.0, min(x, self.width - width))

            if self._overlaps(x, current_y, width):
                x = self._find_free_x(current_y, width)
                if x is None:
                    logger.debug(f"jumping: no free slot at y={current_y:.0f}, skipping")
                    continue

            self.platforms.append(self._new_platform(x, current_y, width, self._random_color()))
            last_center = x + width / 2
            added += 1

        if current_y > max_y:
            logger.warning(f"jumping: platform generation stopped after {attempts} attempts at y={current_y:.0f}")
        return added

    def _ensure_platform_below(self) -> bool:
        """Keep a platform within reach below the player's feet."""
        cfg = self.config
        feet = self.player_pos.y + cfg.player_height
        nearest = min((p.y for p in self.platforms if p.y > feet), default=None)
        if nearest is not None and nearest - feet <= self.height * cfg.safety_factor:
            return False

        y = feet + cfg.safety_drop
        width = self.np_random.uniform(cfg.platform_min_width, cfg.platform_max_width)
        max_x = max(0.0, self.width - width)
        x = self.np_random.uniform(0, max_x)
        for _ in range(cfg.safety_attempts):
            if not self._overlaps(x, y, width):
                break
            x = self.np_random.uniform(0, max_x)
        else:
            logger.warning(f"jumping: no free slot for the safety platform at y={y:.0f}, placing it anyway")

        self.platforms.append(self._new_platform(min(x, max_x), y, width, self._random_color()))
        logger.debug(f"jumping: safety platform added at y={y:.0f}")
        return True

    def _refill_platforms(self):
        cfg = self.config
        top_y = min(p.y for p in self.platforms)
        if top_y > self.camera_y - self.height * REFILL_TRIGGER:
            self._generate_up_to(top_y - cfg.refill)

        falling = self.player_vel.y > FALLING_REFILL_SPEED
        if falling and self.player_pos.y < self.camera_y + self.height * 0.5:
            top_y = min(p.y for p in self.platforms)
            if top_y > self.player_pos.y - FALLING_REFILL_TRIGGER:
                self._generate_up_to(self.player_pos.y - cfg.refill_when_falling)

    def _prune_platforms(self):
        keep = self.height * self.config.keep_range_factor
        self.platforms = [p for p in self.platforms if abs(p.y - self.camera_y) < keep]

    # --- Views ---

    def _high_score_value(self):
        return int(self.max_height)

    def _event_time(self):
        return self.game_time

    def player_state(self) -> Player:
        cfg = self.config
        return Player(
            x=self.player_pos.x,
            y=self.player_pos.y,
            width=cfg.player_width,
            height=cfg.player_height,
            vx=self.player_vel.x,
            vy=self.player_vel.y,
            on_ground=self.on_ground,
        )

    def snapshot(self) -> JumpingSnapshot:
        return JumpingSnapshot(
            state=self.state,
            score=self.score,
            player=self.player_state(),
            platforms=tuple(self.platforms),
            camera_y=self.camera_y,
            current_height=self.current_height,
            max_height=self.max_height,
            fall_distance=self.fall_distance,
            game_time=self.game_time,
            mode=self.mode,
            song=self.song,
            song_progress=self.song_progress,
            songs_completed=self.songs_completed,
            recording=tuple(self.recording),
            width=self.width,
            height=self.height,
            high_score=self.high_score,
        )

    def _get_observation(self):
        cfg = self.config
        cx = self.player_pos.x + cfg.player_width / 2
        feet = self.player_pos.y + cfg.player_height
        above = min((p for p in self.platforms if p.y < feet), key=lambda p: feet - p.y, default=None)
        below = min((p for p in self.platforms if p.y >= feet), key=lambda p: p.y - feet, default=None)

        def offset(platform):
            if platform is None:
                return [0.0, 0.0]
            return [platform.center_x - cx, platform.y - feet]

        return np.array(
            [
                self.player_pos.x,
                self.player_pos.y - self.camera_y,
                self.player_vel.x,
                self.player_vel.y,
                float(self.on_ground),
                *offset(above),
                *offset(below),
            ],
            dtype=np.float32,
        )

    def _get_info(self):
        info = super()._get_info()
        info.update(
            {
                "max_height": int(self.max_height),
                "mode": self.mode.value,
                "songs_completed": self.songs_completed,
            }
        )
        return info


if __name__ == "__main__":
    from minigames.policies import jumping_policy

    env = JumpingEnv(mode=JumpMode.SONG)
    obs, info = env.reset(seed=42)
    terminated = False
    while not terminated and info["steps"] < 5000:
        obs, reward, terminated, truncated, info = env.step(jumping_policy(env))

    print(f"Score: {info['score']}, max height: {info['max_height']}, songs: {info['songs_completed']}")
