from __future__ import annotations

import math
from dataclasses import replace

import numpy as np
import pytest

from minigames.breakout import BreakoutEnv
from minigames.config import BreakoutConfig, BrickLevel
from minigames.effects import EffectKind
from minigames.input_state import InputState
from minigames.state import GameState


def started(make_env, **kwargs) -> BreakoutEnv:
    env = make_env(BreakoutEnv, **kwargs)
    env.start()
    env.drain_effect_events()
    return env


def place_ball(env: BreakoutEnv, x, y, vx, vy) -> None:
    env.ball_pos.update(x, y)
    env.ball_vel.update(vx, vy)


def test_initial_layout(make_env) -> None:
    env = make_env(BreakoutEnv)
    snap = env.snapshot()

    assert snap.state is GameState.MENU
    assert snap.lives == 3
    assert snap.paddle_x == 150
    assert snap.paddle_y == 570
    assert (snap.ball.x, snap.ball.y) == (200, 550)
    assert (snap.ball.vx, snap.ball.vy) == (4, -4)
    assert len(snap.bricks) == 15
    assert snap.bricks[0].points == 10 and snap.bricks[-1].points == 30


def test_ball_moving_up_keeps_speed(make_env) -> None:
    env = started(make_env, width=400, height=400)
    env.paddle_x = 150
    place_ball(env, 200, 300, 4, -4)

    env.update()
    snap = env.snapshot()
    assert snap.ball.vy < 0
    assert snap.ball.speed == pytest.approx(math.sqrt(32))


def test_paddle_bounce_preserves_speed(make_env) -> None:
    env = started(make_env, width=400, height=400)
    env.paddle_x = 150
    place_ball(env, 200, 360, 4, 4)

    env.update()
    assert env.ball_vel.y < 0
    assert env.ball_vel.x > 0  # right of centre
    assert env.ball_vel.length() == pytest.approx(math.sqrt(32))
    assert env.ball_pos.y == pytest.approx(370 - 8)
    assert [e.kind for e in env.drain_effect_events()] == [EffectKind.PADDLE_HIT]


def test_paddle_edge_bounces_at_sixty_degrees(make_env) -> None:
    env = started(make_env, width=400, height=400)
    env.paddle_x = 150
    # Left of the paddle but overlapping through the radius: hit position clamps to 0
    place_ball(env, 149, 360, 0, 5)

    env.update()
    angle = math.degrees(math.atan2(env.ball_vel.x, -env.ball_vel.y))
    assert angle == pytest.approx(-60)
    assert env.ball_vel.length() == pytest.approx(5)


def test_ball_moving_up_through_paddle_is_not_reflected(make_env) -> None:
    env = started(make_env, width=400, height=400)
    env.paddle_x = 150
    place_ball(env, 200, 380, 0, -4)

    env.update()
    assert env.ball_vel.y == -4


def test_walls_reflect_only_when_moving_into_them(make_env) -> None:
    env = started(make_env)
    place_ball(env, 10, 300, -4, 4)
    env.update()
    assert env.ball_vel.x == 4

    place_ball(env, 395, 300, 4, 4)
    env.update()
    assert env.ball_vel.x == -4

    place_ball(env, 200, 10, 0, -4)
    env.update()
    assert env.ball_vel.y == 4


def test_paddle_stays_in_bounds(make_env) -> None:
    env = started(make_env)
    for _ in range(100):
        env.update(InputState(move_left=True))
        assert 0 <= env.paddle_x <= env.width - env.config.paddle_width
    assert env.paddle_x == 0

    env.move_paddle(10_000)
    assert env.paddle_x == env.width - env.config.paddle_width
    env.move_paddle(-10_000)
    assert env.paddle_x == 0


def test_move_paddle_ignored_outside_play(make_env) -> None:
    env = make_env(BreakoutEnv)
    env.move_paddle(50)
    assert env.paddle_x == 150


def test_only_one_brick_per_tick(make_env) -> None:
    env = started(make_env)
    first, second = env.bricks[0], env.bricks[1]
    # Straddle the gap between the first two bricks of the top row
    gap_x = (first.x + first.width + second.x) / 2
    place_ball(env, gap_x, 61, 0, -1)

    env.update()
    assert [b.hit for b in env.bricks[:2]] == [True, False]
    assert sum(b.hit for b in env.bricks) == 1
    assert env.score == first.points

    events = env.drain_effect_events()
    assert [e.kind for e in events] == [EffectKind.BRICK_DESTROYED]
    assert events[0].payload["color"] == first.color
    assert (events[0].x, events[0].y) == first.center


def test_hit_brick_never_collides_again(make_env) -> None:
    env = started(make_env)
    env.bricks[0] = replace(env.bricks[0], hit=True)
    cx, cy = env.bricks[0].center
    place_ball(env, cx, cy + 1, 0, -1)

    env.update()
    assert env.score == 0
    assert env.ball_vel.y == -1
    assert env.bricks[0].hit


def test_clearing_a_level_loads_the_next(make_env) -> None:
    env = started(make_env)
    env.score = 100
    env.bricks = [replace(b, hit=True) for b in env.bricks[:-1]] + [env.bricks[-1]]
    last = env.bricks[-1]
    cx, cy = last.center
    place_ball(env, cx, cy + 1, 0, -1)

    env.update()
    assert env.state is GameState.PLAYING
    assert env.level == 1
    assert len(env.bricks) == 24
    assert not any(b.hit for b in env.bricks)
    assert env.score == 100 + last.points
    assert env.lives == 3
    assert (env.ball_pos.x, env.ball_pos.y) == (200, 550)
    kinds = [e.kind for e in env.drain_effect_events()]
    assert kinds == [EffectKind.BRICK_DESTROYED, EffectKind.LEVEL_COMPLETE]


def test_clearing_the_last_level_wins(make_env, scores) -> None:
    single = BrickLevel(1, 1, 50, 20, 0, 50, ("#FFFFFF",), (10,))
    env = started(make_env, config=BreakoutConfig(levels=(single,)))
    place_ball(env, 200, 75, 0, -4)

    env.update()
    assert env.state is GameState.VICTORY
    assert scores.get_high_score("breakout") == 10
    events = env.drain_effect_events()
    assert events[-1].kind is EffectKind.VICTORY
    assert events[-1].payload["new_best"] is True


def test_losing_the_ball_costs_a_life(make_env) -> None:
    env = started(make_env)
    env.paddle_x = 0
    place_ball(env, 300, env.height - 10, 0, 4)

    env.update()
    assert env.lives == 2
    assert env.state is GameState.PLAYING
    assert (env.ball_pos.x, env.ball_pos.y) == (200, 550)
    assert [e.kind for e in env.drain_effect_events()] == [EffectKind.LIFE_LOST]


def test_last_life_ends_the_game(make_env, scores) -> None:
    env = started(make_env)
    env.lives = 1
    env.score = 70
    env.paddle_x = 0
    place_ball(env, 300, env.height - 10, 0, 4)

    env.update()
    assert env.state is GameState.GAME_OVER
    assert scores.get_high_score("breakout") == 70
    assert env.drain_effect_events()[-1].kind is EffectKind.GAME_OVER

    # Nothing moves after the game is over
    ball = env.snapshot().ball
    env.update()
    assert env.snapshot().ball == ball


def test_bricks_scale_with_wide_viewports(make_env) -> None:
    env = make_env(BreakoutEnv, width=1000, height=700)
    brick = env.bricks[0]
    assert brick.width == pytest.approx(75 * 1.2)
    row_width = 5 * brick.width + 4 * 10 * 1.2
    assert brick.x == pytest.approx((1000 - row_width) / 2)


def test_reset_twice_gives_identical_snapshots(make_env) -> None:
    env = started(make_env)
    for _ in range(30):
        env.update(InputState(move_right=True))

    env.reset()
    first = env.snapshot()
    env.reset()
    assert env.snapshot() == first
    assert first.state is GameState.MENU


def test_gym_step(make_env) -> None:
    env = make_env(BreakoutEnv)
    obs, info = env.reset(seed=1)
    assert obs.dtype == np.float32
    assert env.observation_space.contains(obs)

    obs, reward, terminated, truncated, info = env.step(np.array([4, 0, 0]))
    assert env.state is GameState.PLAYING
    assert reward == 0.0
    assert not terminated and not truncated
    assert info["lives"] == 3
    assert env.paddle_x == 155
