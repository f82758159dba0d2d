from __future__ import annotations

import gymnasium as gym
import numpy as np
from loguru import logger
from statemachine.exceptions import TransitionNotAllowed

from minigames.clock import Clock, Scheduler, SystemClock
from minigames.effects import EffectEvent, EffectKind, EffectQueue
from minigames.input_state import NO_INPUT, InputState, input_from_action
from minigames.state import TERMINAL_STATES, GameFlow, GameState
from minigames.storage import HighScoreStore, MemoryHighScoreStore
from minigames.stream import SnapshotStream


class ArcadeEnv(gym.Env):
    """Shared lifecycle for the minigame engines.

    Subclasses build their world in `_reset_world`, advance it in `_tick` and
    describe it in `snapshot`. Everything else (state machine, timers, effect
    queue, snapshot broadcast, high scores, the gym step adapter) lives here.
    """

    metadata = {"render_modes": []}

    GAME_KEY = "arcade"
    DEFAULT_VIEWPORT = (400, 600)
    FALLBACK_VIEWPORT = (375, 667)

    def __init__(
        self,
        config,
        width: float | None = None,
        height: float | None = None,
        clock: Clock | None = None,
        high_scores: HighScoreStore | None = None,
    ):
        super().__init__()

        self.config = config
        self.clock = clock if clock is not None else SystemClock()
        self.high_scores = high_scores if high_scores is not None else MemoryHighScoreStore()

        self.flow = GameFlow()
        self.scheduler = Scheduler()
        self.effects = EffectQueue(config.max_effect_events)
        self.snapshots = SnapshotStream()

        if width is None and height is None:
            width, height = self.DEFAULT_VIEWPORT
        self.width, self.height = self._checked_viewport(width, height)

        self.score = 0
        self.steps = 0

    # --- Lifecycle controls ---

    @property
    def state(self) -> GameState:
        return self.flow.game_state

    @property
    def high_score(self) -> float:
        return self.high_scores.get_high_score(self.GAME_KEY)

    def initialize_viewport(self, width: float, height: float) -> None:
        self.width, self.height = self._checked_viewport(width, height)
        self.reset()

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)

        self._transition("to_menu")
        self.scheduler.clear()
        self.effects.clear()
        self.score = 0
        self.steps = 0
        self._reset_world()

        self._publish()
        return self._get_observation(), self._get_info()

    def start(self) -> None:
        if self.state in TERMINAL_STATES:
            self.reset()
        if not self._can_start():
            return
        if not self._transition("begin"):
            return
        self._on_start(self.clock.now())
        logger.info(f"{self.GAME_KEY}: run started ({self.width:.0f}x{self.height:.0f})")
        self._publish()

    def pause(self) -> None:
        if not self._transition("pause"):
            return
        now = self.clock.now()
        self.scheduler.pause(now)
        self._on_pause(now)
        self._publish()

    def resume(self) -> None:
        if not self._transition("resume"):
            return
        now = self.clock.now()
        paused_for = self.scheduler.resume(now)
        self._on_resume(now, paused_for)
        self._publish()

    def toggle_pause(self) -> None:
        if self.state is GameState.PLAYING:
            self.pause()
        elif self.state is GameState.PAUSED:
            self.resume()

    def update(self, inp: InputState | None = None):
        """Advance one frame. Outside PLAYING this only returns the snapshot."""
        if self.state is not GameState.PLAYING:
            return self.snapshot()

        self.scheduler.run_due(self.clock.now())
        # A timer may have ended the run
        if self.state is GameState.PLAYING:
            self._tick(inp if inp is not None else NO_INPUT)
        self.steps += 1

        return self._publish()

    # --- Observers ---

    def subscribe(self, callback):
        return self.snapshots.subscribe(callback)

    def drain_effect_events(self) -> list[EffectEvent]:
        return self.effects.drain()

    def snapshot(self):
        raise NotImplementedError

    # --- Gymnasium adapter ---

    def step(self, action):
        if self.state is GameState.MENU:
            self.start()

        score_before = self.score
        inp = self._apply_action(action)
        self.update(inp)

        terminated = self.state in TERMINAL_STATES
        reward = float(self.score - score_before)
        return self._get_observation(), reward, terminated, False, self._get_info()

    def _apply_action(self, action) -> InputState:
        return input_from_action(action)

    def _get_observation(self) -> np.ndarray:
        raise NotImplementedError

    def _get_info(self) -> dict:
        return {
            "score": self.score,
            "steps": self.steps,
            "state": self.state.value,
            "high_score": self.high_score,
        }

    # --- Subclass hooks ---

    def _reset_world(self) -> None:
        raise NotImplementedError

    def _tick(self, inp: InputState) -> None:
        raise NotImplementedError

    def _can_start(self) -> bool:
        return True

    def _on_start(self, now: float) -> None:
        pass

    def _on_pause(self, now: float) -> None:
        pass

    def _on_resume(self, now: float, paused_for: float) -> None:
        pass

    def _high_score_value(self) -> float:
        return self.score

    def _event_time(self) -> float:
        return self.clock.now()

    # --- Helpers ---

    def _transition(self, event: str) -> bool:
        try:
            self.flow.send(event)
        except TransitionNotAllowed:
            logger.debug(f"{self.GAME_KEY}: '{event}' ignored in state {self.state.value}")
            return False
        return True

    def _end_run(self, event: str, kind: EffectKind, /, **payload) -> None:
        """Move to a terminal state, stop timers and record the high score."""
        if not self._transition(event):
            return
        self.scheduler.clear()
        value = self._high_score_value()
        new_best = self._record_high_score(value)
        self.emit(kind, score=self.score, new_best=new_best, **payload)
        logger.info(f"{self.GAME_KEY}: {self.state.value} with score {self.score}")

    def _record_high_score(self, value: float) -> bool:
        if value > self.high_score:
            self.high_scores.set_high_score(self.GAME_KEY, value)
            logger.info(f"{self.GAME_KEY}: new high score {value}")
            return True
        return False

    def emit(self, kind: EffectKind, x: float = 0.0, y: float = 0.0, /, **payload) -> None:
        self.effects.push(EffectEvent(kind=kind, x=x, y=y, timestamp=self._event_time(), payload=payload))

    def _publish(self):
        snapshot = self.snapshot()
        self.snapshots.publish(snapshot)
        return snapshot

    def _checked_viewport(self, width, height) -> tuple[float, float]:
        if width is None or height is None or width <= 0 or height <= 0:
            logger.warning(f"Invalid viewport {width}x{height}, using {self.FALLBACK_VIEWPORT[0]}x{self.FALLBACK_VIEWPORT[1]}")
            width, height = self.FALLBACK_VIEWPORT
        return float(width), float(height)
