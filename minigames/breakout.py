from __future__ import annotations

import math
from dataclasses import dataclass, replace

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame
from loguru import logger

from minigames.base import ArcadeEnv
from minigames.config import BreakoutConfig
from minigames.effects import EffectKind
from minigames.state import GameState

# Paddle bounce spans -60..+60 degrees from vertical
MAX_BOUNCE_ANGLE = math.radians(60)


@dataclass(frozen=True)
class Ball:
    x: float
    y: float
    vx: float
    vy: float
    radius: float

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)


@dataclass(frozen=True)
class Brick:
    x: float
    y: float
    width: float
    height: float
    color: str
    points: int
    hit: bool = False

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


@dataclass(frozen=True)
class BreakoutSnapshot:
    state: GameState
    score: int
    lives: int
    level: int
    bricks: tuple[Brick, ...]
    ball: Ball
    paddle_x: float
    paddle_y: float
    paddle_width: float
    paddle_height: float
    width: float
    height: float
    high_score: float

    @property
    def bricks_left(self) -> int:
        return sum(1 for b in self.bricks if not b.hit)


class BreakoutEnv(ArcadeEnv):
    """Brick breaker: keep the ball in play and clear every level."""

    GAME_KEY = "breakout"

    user_guide = "Controls: Use ← and → to move the paddle."
    game_description = "Clear all bricks to advance. Lose the ball 3 times and the game is over."
    auto_advance = True

    def __init__(self, config: BreakoutConfig | None = None, width=None, height=None, clock=None, high_scores=None):
        super().__init__(config or BreakoutConfig(), width, height, clock, high_scores)

        self.action_space = MultiDiscrete([5, 2, 2])
        self.observation_space = gym.spaces.Box(low=-np.inf, high=np.inf, shape=(8,), dtype=np.float32)

        # Initialized in reset()
        self.lives = 0
        self.level = 0
        self.bricks: list[Brick] = []
        self.paddle_x = 0.0
        self.ball_pos = pygame.Vector2(0, 0)
        self.ball_vel = pygame.Vector2(0, 0)

        self.reset()

    @property
    def paddle_y(self) -> float:
        return self.height - self.config.paddle_bottom_offset

    def _reset_world(self):
        cfg = self.config
        self.lives = cfg.lives
        self.paddle_x = (self.width - cfg.paddle_width) / 2
        self._serve_ball()
        self._load_level(0)

    def _serve_ball(self):
        cfg = self.config
        self.ball_pos = pygame.Vector2(self.width / 2, self.height - cfg.serve_bottom_offset)
        self.ball_vel = pygame.Vector2(cfg.serve_vx, cfg.serve_vy)

    def _load_level(self, index):
        cfg = self.config
        level = cfg.levels[index]
        self.level = index

        # Bricks scale with the viewport, capped so wide screens keep sane sizes
        scale = min(self.width / cfg.reference_width, cfg.max_scale)
        brick_width = level.brick_width * scale
        brick_height = level.brick_height * scale
        padding = level.brick_padding * scale
        total_width = level.cols * brick_width + (level.cols - 1) * padding
        offset_left = (self.width - total_width) / 2

        self.bricks = []
        for row in range(level.rows):
            for col in range(level.cols):
                self.bricks.append(
                    Brick(
                        x=col * (brick_width + padding) + offset_left,
                        y=row * (brick_height + padding) + level.brick_offset_top,
                        width=brick_width,
                        height=brick_height,
                        color=level.colors[row % len(level.colors)],
                        points=level.points[row % len(level.points)],
                    )
                )

    # --- Input ---

    def move_paddle(self, dx: float) -> None:
        """Touch drag: move by a raw pixel delta."""
        if self.state is not GameState.PLAYING:
            return
        self._shift_paddle(dx)
        self._publish()

    def _shift_paddle(self, dx):
        max_x = max(0.0, self.width - self.config.paddle_width)
        self.paddle_x = max(0.0, min(self.paddle_x + dx, max_x))

    # --- Simulation ---

    def _tick(self, inp):
        if inp.horizontal:
            self._shift_paddle(inp.horizontal * self.config.paddle_speed)
        self._update_ball()

    def _update_ball(self):
        r = self.config.ball_radius
        self.ball_pos += self.ball_vel

        # Side and top walls
        if self.ball_pos.x - r <= 0 and self.ball_vel.x < 0:
            self.ball_vel.x = -self.ball_vel.x
        elif self.ball_pos.x + r >= self.width and self.ball_vel.x > 0:
            self.ball_vel.x = -self.ball_vel.x
        if self.ball_pos.y - r <= 0 and self.ball_vel.y < 0:
            self.ball_vel.y = -self.ball_vel.y

        # Ball lost
        if self.ball_pos.y + r >= self.height:
            self._lose_life()
            return

        self._check_paddle_collision()
        self._check_brick_collision()

    def _check_paddle_collision(self):
        cfg = self.config
        r = cfg.ball_radius
        px, py = self.paddle_x, self.paddle_y
        pos = self.ball_pos

        if not (
            pos.x + r >= px
            and pos.x - r <= px + cfg.paddle_width
            and pos.y + r >= py
            and pos.y - r <= py + cfg.paddle_height
            and self.ball_vel.y > 0
        ):
            return

        # Where on the paddle, 0 = left edge, 1 = right edge
        hit_pos = min(max((pos.x - px) / cfg.paddle_width, 0.0), 1.0)
        angle = (hit_pos - 0.5) * 2 * MAX_BOUNCE_ANGLE
        speed = self.ball_vel.length()
        self.ball_vel = pygame.Vector2(0, -speed).rotate(math.degrees(angle))

        pos.y = py - r
        self.emit(EffectKind.PADDLE_HIT, pos.x, py, hit_position=hit_pos)
        # sfx: paddle

    def _check_brick_collision(self):
        r = self.config.ball_radius
        pos = self.ball_pos

        for i, brick in enumerate(self.bricks):
            if brick.hit:
                continue
            if not (
                pos.x + r >= brick.x
                and pos.x - r <= brick.x + brick.width
                and pos.y + r >= brick.y
                and pos.y - r <= brick.y + brick.height
            ):
                continue

            self.bricks[i] = replace(brick, hit=True)
            self.score += brick.points

            cx, cy = brick.center
            dx = pos.x - cx
            dy = pos.y - cy
            if abs(dx) > abs(dy):
                self.ball_vel.x = -self.ball_vel.x
            else:
                self.ball_vel.y = -self.ball_vel.y

            self.emit(EffectKind.BRICK_DESTROYED, cx, cy, color=brick.color, points=brick.points)
            # sfx: hit

            if all(b.hit for b in self.bricks):
                self._next_level()
            # One brick per tick
            break

    def _next_level(self):
        self.emit(EffectKind.LEVEL_COMPLETE, level=self.level)
        if self.level + 1 >= len(self.config.levels):
            self._end_run("win", EffectKind.VICTORY, level=self.level)
            return
        self._serve_ball()
        self._load_level(self.level + 1)
        logger.info(f"breakout: level {self.level + 1} of {len(self.config.levels)}")

    def _lose_life(self):
        self.lives -= 1
        self.emit(EffectKind.LIFE_LOST, self.ball_pos.x, self.ball_pos.y, lives=self.lives)
        if self.lives <= 0:
            self._end_run("lose", EffectKind.GAME_OVER)
        else:
            self._serve_ball()

    # --- Views ---

    def snapshot(self) -> BreakoutSnapshot:
        cfg = self.config
        return BreakoutSnapshot(
            state=self.state,
            score=self.score,
            lives=self.lives,
            level=self.level,
            bricks=tuple(self.bricks),
            ball=Ball(self.ball_pos.x, self.ball_pos.y, self.ball_vel.x, self.ball_vel.y, cfg.ball_radius),
            paddle_x=self.paddle_x,
            paddle_y=self.paddle_y,
            paddle_width=cfg.paddle_width,
            paddle_height=cfg.paddle_height,
            width=self.width,
            height=self.height,
            high_score=self.high_score,
        )

    def _get_observation(self):
        bricks_left = sum(1 for b in self.bricks if not b.hit)
        return np.array(
            [
                self.ball_pos.x,
                self.ball_pos.y,
                self.ball_vel.x,
                self.ball_vel.y,
                self.paddle_x,
                self.lives,
                self.level,
                bricks_left,
            ],
            dtype=np.float32,
        )

    def _get_info(self):
        info = super()._get_info()
        info.update({"lives": self.lives, "level": self.level, "bricks_left": sum(1 for b in self.bricks if not b.hit)})
        return info


# Example of how to run the environment
if __name__ == "__main__":
    from minigames.policies import breakout_policy

    env = BreakoutEnv()
    obs, info = env.reset(seed=0)
    done = False
    while not done:
        obs, reward, terminated, truncated, info = env.step(breakout_policy(env))
        done = terminated or truncated or info["steps"] >= 20000

    print(f"Final Score: {info['score']}")
    print(f"Level reached: {info['level'] + 1}")
    print(f"Total Steps: {info['steps']}")
