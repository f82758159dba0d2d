from __future__ import annotations

import itertools
from dataclasses import dataclass, replace

import gymnasium as gym
from gymnasium.spaces import Discrete
import numpy as np
from loguru import logger

from minigames.base import ArcadeEnv
from minigames.config import ShootingConfig
from minigames.effects import EffectKind
from minigames.input_state import NO_INPUT
from minigames.state import GameState


@dataclass(frozen=True)
class Target:
    id: int
    x: float  # centre
    y: float
    size: float
    spawn_time: float
    disappear_time: float
    hit: bool = False
    visible: bool = True

    def contains(self, px: float, py: float) -> bool:
        radius = self.size / 2
        return (px - self.x) ** 2 + (py - self.y) ** 2 <= radius * radius


@dataclass(frozen=True)
class ShootingSnapshot:
    state: GameState
    score: int
    time_left: int
    targets: tuple[Target, ...]
    width: float
    height: float
    high_score: float


class ShootingEnv(ArcadeEnv):
    GAME_KEY = "shooting"

    user_guide = "Controls: tap a target before it disappears."
    game_description = "Hit as many targets as you can in 60 seconds."
    auto_advance = True

    def __init__(self, config: ShootingConfig | None = None, width=None, height=None, clock=None, high_scores=None):
        super().__init__(config or ShootingConfig(), width, height, clock, high_scores)

        slots = self.config.max_targets
        # 0 holds fire, i shoots the i-th visible target (oldest first)
        self.action_space = Discrete(slots + 1)
        # time_left, then x, y, size, remaining life per target slot
        self.observation_space = gym.spaces.Box(low=-np.inf, high=np.inf, shape=(1 + 4 * slots,), dtype=np.float32)

        # Initialized in reset()
        self.time_left = 0
        self.targets: list[Target] = []
        self._target_ids = itertools.count(1)

        self.reset()

    def _reset_world(self):
        self.time_left = self.config.duration
        self.targets = []
        self._target_ids = itertools.count(1)

    def _on_start(self, now):
        self.scheduler.call_every(now, 1.0, self._count_down)
        self._spawn_target()
        self._schedule_spawn(now)

    def _on_resume(self, now, paused_for):
        self.targets = [
            replace(t, spawn_time=t.spawn_time + paused_for, disappear_time=t.disappear_time + paused_for)
            for t in self.targets
        ]

    # --- Timers ---

    def _count_down(self):
        self.time_left -= 1
        if self.time_left <= 0:
            self.time_left = 0
            self._end_run("lose", EffectKind.GAME_OVER)

    def _schedule_spawn(self, now):
        cfg = self.config
        delay = self.np_random.uniform(cfg.min_spawn_delay, cfg.max_spawn_delay)
        self.scheduler.call_later(now, delay, self._spawn_and_rearm)

    def _spawn_and_rearm(self):
        self._spawn_target()
        self._schedule_spawn(self.clock.now())

    def _spawn_target(self) -> Target | None:
        cfg = self.config
        now = self.clock.now()
        size = self.np_random.uniform(cfg.min_target_size, cfg.max_target_size)

        # Keep the whole target on screen and clear of the HUD
        margin = size / 2 + cfg.edge_margin
        min_x, max_x = margin, self.width - margin
        min_y, max_y = margin + cfg.hud_margin, self.height - margin
        if max_x <= min_x or max_y <= min_y:
            logger.warning(f"shooting: no room for a {size:.0f}px target in {self.width:.0f}x{self.height:.0f}")
            return None

        target = Target(
            id=next(self._target_ids),
            x=self.np_random.uniform(min_x, max_x),
            y=self.np_random.uniform(min_y, max_y),
            size=size,
            spawn_time=now,
            disappear_time=now + self.np_random.uniform(cfg.min_target_life, cfg.max_target_life),
        )
        self.targets.append(target)
        logger.debug(f"shooting: target #{target.id} at ({target.x:.0f}, {target.y:.0f})")
        return target

    def _remove_target(self, target_id):
        self.targets = [t for t in self.targets if t.id != target_id]

    # --- Shots ---

    def shoot(self, target_id: int) -> bool:
        if self.state is not GameState.PLAYING:
            return False
        for i, target in enumerate(self.targets):
            if target.id == target_id:
                break
        else:
            return False
        if target.hit or not target.visible:
            return False

        self.targets[i] = replace(target, hit=True, visible=False)
        self.score += self.config.points_per_hit
        self.emit(EffectKind.TARGET_HIT, target.x, target.y, target_id=target.id, points=self.config.points_per_hit)
        # sfx: hit

        # Keep it around briefly for the hit flash
        self.scheduler.call_later(self.clock.now(), self.config.hit_removal_delay, lambda: self._remove_target(target_id))
        self._publish()
        return True

    def shoot_at(self, x: float, y: float) -> int | None:
        """Shoot the topmost visible target under the point. Returns its id, or None on a miss."""
        if self.state is not GameState.PLAYING:
            return None
        for target in reversed(self.targets):
            if target.visible and not target.hit and target.contains(x, y):
                self.shoot(target.id)
                return target.id

        self.emit(EffectKind.SHOT_MISSED, x, y)
        # sfx: miss
        self._publish()
        return None

    # --- Simulation ---

    def _tick(self, inp):
        now = self.clock.now()
        kept = []
        for target in self.targets:
            if not target.hit and now >= target.disappear_time:
                self.emit(EffectKind.TARGET_EXPIRED, target.x, target.y, target_id=target.id)
                continue
            kept.append(target)
        self.targets = kept

    def visible_targets(self) -> list[Target]:
        return [t for t in self.targets if t.visible and not t.hit]

    # --- Views ---

    def _apply_action(self, action):
        slot = int(action)
        if slot > 0:
            visible = self.visible_targets()
            if slot - 1 < len(visible):
                self.shoot(visible[slot - 1].id)
            elif self.state is GameState.PLAYING:
                self.emit(EffectKind.SHOT_MISSED)
        return NO_INPUT

    def snapshot(self) -> ShootingSnapshot:
        return ShootingSnapshot(
            state=self.state,
            score=self.score,
            time_left=self.time_left,
            targets=tuple(self.targets),
            width=self.width,
            height=self.height,
            high_score=self.high_score,
        )

    def _get_observation(self):
        now = self.clock.now()
        obs = np.zeros(self.observation_space.shape, dtype=np.float32)
        obs[0] = self.time_left
        for i, target in enumerate(self.visible_targets()[: self.config.max_targets]):
            obs[1 + 4 * i : 5 + 4 * i] = (target.x, target.y, target.size, target.disappear_time - now)
        return obs

    def _get_info(self):
        info = super()._get_info()
        info.update({"time_left": self.time_left, "targets": len(self.visible_targets())})
        return info
