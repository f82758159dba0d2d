from __future__ import annotations

import itertools
from dataclasses import dataclass, replace

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
from loguru import logger

from minigames.base import ArcadeEnv
from minigames.config import CatchingConfig
from minigames.effects import EffectKind
from minigames.state import GameState


@dataclass(frozen=True)
class Fruit:
    id: int
    x: float
    y: float
    size: float
    kind: str
    speed: float
    caught: bool = False
    missed: bool = False

    @property
    def resolved(self) -> bool:
        return self.caught or self.missed


@dataclass(frozen=True)
class CatchingSnapshot:
    state: GameState
    score: int
    lives: int
    basket_x: float
    basket_y: float
    basket_width: float
    basket_height: float
    fruits: tuple[Fruit, ...]
    width: float
    height: float
    high_score: float


class CatchingEnv(ArcadeEnv):
    GAME_KEY = "catching"

    user_guide = "Controls: Use ← and → to move the basket."
    game_description = "Catch the falling fruit. Three misses and the game is over."
    auto_advance = True

    def __init__(self, config: CatchingConfig | None = None, width=None, height=None, clock=None, high_scores=None):
        super().__init__(config or CatchingConfig(), width, height, clock, high_scores)

        self.action_space = MultiDiscrete([5, 2, 2])
        # basket_x, lives, then x, y, size, speed of the lowest live fruit
        self.observation_space = gym.spaces.Box(low=-np.inf, high=np.inf, shape=(6,), dtype=np.float32)

        # Initialized in reset()
        self.lives = 0
        self.basket_x = 0.0
        self.fruits: list[Fruit] = []
        self._fruit_ids = itertools.count(1)

        self.reset()

    @property
    def basket_y(self) -> float:
        """Top of the basket; its bottom edge sits `basket_bottom_offset` above the floor."""
        cfg = self.config
        return self.height - cfg.basket_bottom_offset - cfg.basket_height

    def _reset_world(self):
        cfg = self.config
        self.lives = cfg.lives
        self.basket_x = (self.width - cfg.basket_width) / 2
        self.fruits = []
        self._fruit_ids = itertools.count(1)

    def _on_start(self, now):
        self.scheduler.call_every(now, self.config.spawn_interval, self._spawn_fruit)

    # --- Input ---

    def move_basket(self, direction: int) -> None:
        """Discrete move, -1 for left and 1 for right."""
        if self.state is not GameState.PLAYING:
            return
        self._shift_basket(direction * self.config.basket_speed)
        self._publish()

    def _shift_basket(self, dx):
        max_x = max(0.0, self.width - self.config.basket_width)
        self.basket_x = max(0.0, min(self.basket_x + dx, max_x))

    # --- Simulation ---

    def _spawn_fruit(self):
        cfg = self.config
        size = self.np_random.uniform(cfg.fruit_min_size, cfg.fruit_max_size)
        speed = self.np_random.uniform(cfg.fruit_min_speed, cfg.fruit_max_speed)
        kind = cfg.fruit_kinds[int(self.np_random.integers(len(cfg.fruit_kinds)))]
        fruit = Fruit(
            id=next(self._fruit_ids),
            x=self.np_random.uniform(0, max(0.0, self.width - size)),
            y=-size,
            size=size,
            kind=kind,
            speed=speed,
        )
        self.fruits.append(fruit)
        logger.debug(f"catching: spawned {fruit.kind} #{fruit.id} at x={fruit.x:.0f}")

    def _tick(self, inp):
        if inp.horizontal:
            self._shift_basket(inp.horizontal * self.config.basket_speed)
        self._update_fruits()

    def _update_fruits(self):
        cfg = self.config
        basket_bottom = self.height - cfg.basket_bottom_offset
        basket_top = basket_bottom - cfg.basket_height

        updated = []
        for fruit in self.fruits:
            fruit = replace(fruit, y=fruit.y + fruit.speed)

            if fruit.resolved:
                # Keep falling for the fade-out, then drop
                if fruit.y <= self.height + cfg.purge_margin:
                    updated.append(fruit)
                continue

            if self.state is not GameState.PLAYING:
                pass  # run ended earlier in this tick
            elif fruit.y + fruit.size > self.height:
                fruit = replace(fruit, missed=True)
                self._lose_life(fruit)
            elif (
                fruit.y + fruit.size >= basket_top
                and fruit.y <= basket_bottom
                and fruit.x + fruit.size >= self.basket_x
                and fruit.x <= self.basket_x + cfg.basket_width
            ):
                fruit = replace(fruit, caught=True)
                self.score += cfg.points_per_fruit
                self.emit(
                    EffectKind.FRUIT_CAUGHT,
                    fruit.x + fruit.size / 2,
                    fruit.y + fruit.size / 2,
                    kind=fruit.kind,
                    points=cfg.points_per_fruit,
                )
                # sfx: catch
            updated.append(fruit)

        self.fruits = updated

    def _lose_life(self, fruit):
        self.lives -= 1
        self.emit(EffectKind.FRUIT_MISSED, fruit.x + fruit.size / 2, self.height, kind=fruit.kind, lives=self.lives)
        if self.lives <= 0:
            self._end_run("lose", EffectKind.GAME_OVER)

    # --- Views ---

    def snapshot(self) -> CatchingSnapshot:
        cfg = self.config
        return CatchingSnapshot(
            state=self.state,
            score=self.score,
            lives=self.lives,
            basket_x=self.basket_x,
            basket_y=self.basket_y,
            basket_width=cfg.basket_width,
            basket_height=cfg.basket_height,
            fruits=tuple(self.fruits),
            width=self.width,
            height=self.height,
            high_score=self.high_score,
        )

    def _get_observation(self):
        live = [f for f in self.fruits if not f.resolved]
        lowest = max(live, key=lambda f: f.y, default=None)
        if lowest is None:
            fruit_features = [0.0, 0.0, 0.0, 0.0]
        else:
            fruit_features = [lowest.x, lowest.y, lowest.size, lowest.speed]
        return np.array([self.basket_x, self.lives, *fruit_features], dtype=np.float32)

    def _get_info(self):
        info = super()._get_info()
        info["lives"] = self.lives
        return info
