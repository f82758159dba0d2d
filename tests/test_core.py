from __future__ import annotations

import json

import pytest
from statemachine.exceptions import TransitionNotAllowed

from minigames import GAMES
from minigames.breakout import BreakoutEnv
from minigames.clock import ManualClock, Scheduler
from minigames.config import CatchingConfig, JumpingConfig, RhythmConfig
from minigames.effects import EffectEvent, EffectKind, EffectQueue
from minigames.presenter import EffectPlayer
from minigames.state import GameFlow, GameState
from minigames.storage import JsonHighScoreStore, MemoryHighScoreStore
from minigames.stream import SnapshotStream


# --- GameFlow ---


def test_flow_follows_legal_transitions() -> None:
    flow = GameFlow()
    assert flow.game_state is GameState.MENU

    flow.send("begin")
    flow.send("pause")
    assert flow.game_state is GameState.PAUSED
    flow.send("resume")
    flow.send("win")
    assert flow.game_state is GameState.VICTORY

    flow.send("begin")
    assert flow.game_state is GameState.PLAYING


def test_flow_rejects_illegal_transitions() -> None:
    flow = GameFlow()
    with pytest.raises(TransitionNotAllowed):
        flow.send("pause")
    with pytest.raises(TransitionNotAllowed):
        flow.send("lose")
    # menu -> menu is allowed so reset() can always run
    flow.send("to_menu")
    assert flow.game_state is GameState.MENU


# --- Clock and scheduler ---


def test_manual_clock_cannot_go_backwards() -> None:
    clock = ManualClock(5.0)
    assert clock.advance(1.5) == 6.5
    with pytest.raises(ValueError):
        clock.advance(-1)


def test_scheduler_runs_due_tasks_in_order() -> None:
    scheduler = Scheduler()
    ran: list[str] = []
    scheduler.call_later(0.0, 2.0, lambda: ran.append("late"))
    scheduler.call_later(0.0, 1.0, lambda: ran.append("early"))

    assert scheduler.run_due(0.5) == 0
    assert scheduler.run_due(2.0) == 2
    assert ran == ["early", "late"]
    assert len(scheduler) == 0


def test_repeating_task_keeps_its_cadence() -> None:
    scheduler = Scheduler()
    ticks: list[int] = []
    scheduler.call_every(0.0, 1.0, lambda: ticks.append(1))

    # A late frame catches up on every missed interval
    assert scheduler.run_due(3.5) == 3
    assert scheduler.run_due(3.9) == 0
    assert scheduler.run_due(4.0) == 1
    assert len(ticks) == 4


def test_scheduler_pause_shifts_due_times() -> None:
    scheduler = Scheduler()
    ran: list[int] = []
    scheduler.call_later(0.0, 1.0, lambda: ran.append(1))

    scheduler.pause(0.5)
    assert scheduler.run_due(5.0) == 0
    assert scheduler.resume(10.5) == pytest.approx(10.0)

    assert scheduler.run_due(10.9) == 0
    assert scheduler.run_due(11.0) == 1
    assert ran == [1]


def test_cancelled_task_never_runs() -> None:
    scheduler = Scheduler()
    ran: list[int] = []
    task = scheduler.call_later(0.0, 1.0, lambda: ran.append(1))
    scheduler.cancel(task)
    assert scheduler.run_due(2.0) == 0
    assert ran == []


# --- Effect queue ---


def test_effect_queue_drops_oldest_when_full() -> None:
    queue = EffectQueue(maxlen=3)
    for i in range(5):
        queue.push(EffectEvent(kind=EffectKind.BEAT, payload={"beat": i}))

    events = queue.drain()
    assert [e.payload["beat"] for e in events] == [2, 3, 4]
    assert queue.drain() == []


def test_effect_queue_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        EffectQueue(maxlen=0)


# --- Snapshot stream ---


def test_stream_replays_latest_and_survives_bad_subscribers() -> None:
    stream: SnapshotStream[int] = SnapshotStream()
    stream.publish(1)

    seen: list[int] = []

    def broken(_: int) -> None:
        raise RuntimeError("renderer crashed")

    stream.subscribe(broken)
    unsubscribe = stream.subscribe(seen.append)
    assert seen == [1]

    stream.publish(2)
    assert seen == [1, 2]

    unsubscribe()
    stream.publish(3)
    assert seen == [1, 2]
    assert stream.latest == 3


# --- High scores ---


def test_memory_store_defaults_to_zero() -> None:
    store = MemoryHighScoreStore({"breakout": 40})
    assert store.get_high_score("breakout") == 40
    assert store.get_high_score("catching") == 0


def test_json_store_round_trip(tmp_path) -> None:
    path = tmp_path / "nested" / "scores.json"
    store = JsonHighScoreStore(path)
    assert store.get_high_score("jumping") == 0

    store.set_high_score("jumping", 1234)
    store.set_high_score("shooting", 90)
    assert JsonHighScoreStore(path).get_high_score("jumping") == 1234
    assert json.loads(path.read_text()) == {"jumping": 1234, "shooting": 90}


def test_json_store_ignores_corrupt_file(tmp_path) -> None:
    path = tmp_path / "scores.json"
    path.write_text("{not json")
    assert JsonHighScoreStore(path).get_high_score("breakout") == 0


# --- Config validation ---


@pytest.mark.parametrize(
    "factory",
    [
        lambda: CatchingConfig(fruit_min_size=40, fruit_max_size=20),
        lambda: CatchingConfig(spawn_interval=0),
        lambda: JumpingConfig(gravity=0),
        lambda: JumpingConfig(min_gap=150, max_gap=100),
        lambda: RhythmConfig(perfect_ms=120, great_ms=100),
    ],
)
def test_invalid_config_raises(factory) -> None:
    with pytest.raises(ValueError):
        factory()


# --- Shared engine lifecycle ---


def test_invalid_viewport_falls_back(clock) -> None:
    env = BreakoutEnv(width=0, height=-10, clock=clock)
    assert (env.width, env.height) == (375.0, 667.0)

    env.initialize_viewport(800, 0)
    assert (env.width, env.height) == (375.0, 667.0)


def test_controls_outside_their_state_are_noops(make_env) -> None:
    env = make_env(BreakoutEnv)

    env.pause()
    env.resume()
    assert env.state is GameState.MENU

    before = env.snapshot()
    assert env.update() == before

    env.start()
    env.pause()
    assert env.state is GameState.PAUSED
    ball = env.snapshot().ball
    env.update()
    assert env.snapshot().ball == ball

    env.toggle_pause()
    assert env.state is GameState.PLAYING


def test_subscribers_receive_every_update(make_env) -> None:
    env = make_env(BreakoutEnv)
    received = []
    env.subscribe(received.append)
    assert received[-1].state is GameState.MENU

    env.start()
    env.update()
    assert received[-1].state is GameState.PLAYING
    assert len(received) == 3


def test_start_after_game_over_begins_a_fresh_run(make_env) -> None:
    env = make_env(BreakoutEnv)
    env.start()
    env.lives = 1
    env.ball_pos.update(200, env.height - 9)
    env.ball_vel.update(0, 4)
    env.update()
    assert env.state is GameState.GAME_OVER

    env.start()
    assert env.state is GameState.PLAYING
    assert env.lives == 3
    assert env.score == 0


# --- Effect player ---


class RecordingSink:
    def __init__(self) -> None:
        self.played: list[tuple[str, dict]] = []

    def play_effect(self, kind, params) -> None:
        self.played.append((kind, dict(params)))


class BrokenSink:
    def play_effect(self, kind, params) -> None:
        raise OSError("no audio device")


def test_effect_player_maps_events_to_tones() -> None:
    sink = RecordingSink()
    player = EffectPlayer(sink, volume=0.5)

    assert player.play(EffectEvent(kind=EffectKind.NOTE_HIT, payload={"accuracy": "perfect"}))
    assert player.play(EffectEvent(kind=EffectKind.CHORD, payload={"chord": "Am7", "duration": 1.0}))
    assert not player.play(EffectEvent(kind=EffectKind.METEOR))

    (hit_kind, hit), (chord_kind, chord) = sink.played
    assert hit_kind == "note_hit"
    assert hit["frequencies"] == (880,)
    assert hit["gain"] == pytest.approx(0.1)
    assert chord_kind == "chord"
    assert chord["chord"] == "Am7"


def test_effect_player_swallows_sink_failures(make_env) -> None:
    env = make_env(BreakoutEnv)
    env.emit(EffectKind.PADDLE_HIT, 10, 20)

    player = EffectPlayer(BrokenSink())
    events = player.pump(env)
    assert [e.kind for e in events] == [EffectKind.PADDLE_HIT]
    assert env.drain_effect_events() == []


# --- Registry ---


@pytest.mark.parametrize("key", sorted(GAMES))
def test_every_registered_game_resets_into_the_menu(make_env, key) -> None:
    env = make_env(GAMES[key])
    assert env.GAME_KEY == key
    obs, info = env.reset(seed=1)
    assert env.state is GameState.MENU
    assert env.observation_space.contains(obs)
    assert info["score"] == 0
    assert env.snapshot().state is GameState.MENU


def test_emit_accepts_a_kind_payload_key(make_env) -> None:
    env = make_env(BreakoutEnv)
    env.emit(EffectKind.FRUIT_CAUGHT, 1, 2, kind="apple", points=10)

    (event,) = env.drain_effect_events()
    assert event.kind is EffectKind.FRUIT_CAUGHT
    assert (event.x, event.y) == (1, 2)
    assert event.payload == {"kind": "apple", "points": 10}


def test_state_reads_do_not_warn(make_env, recwarn) -> None:
    env = make_env(BreakoutEnv)
    env.start()
    assert env.state is GameState.PLAYING
    deprecated = [w for w in recwarn if issubclass(w.category, DeprecationWarning) and "current_state" in str(w.message)]
    assert deprecated == []
