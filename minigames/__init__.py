from minigames.breakout import BreakoutEnv
from minigames.catching import CatchingEnv
from minigames.clock import ManualClock, Scheduler, SystemClock
from minigames.effects import EffectEvent, EffectKind, EffectQueue
from minigames.errors import UnknownLevelError
from minigames.input_state import InputState
from minigames.jumping import JumpingEnv, JumpMode
from minigames.presenter import AudioSink, EffectPlayer
from minigames.rhythm import RhythmEnv
from minigames.shooting import ShootingEnv
from minigames.state import GameFlow, GameState
from minigames.storage import JsonHighScoreStore, MemoryHighScoreStore

GAMES = {
    BreakoutEnv.GAME_KEY: BreakoutEnv,
    CatchingEnv.GAME_KEY: CatchingEnv,
    JumpingEnv.GAME_KEY: JumpingEnv,
    RhythmEnv.GAME_KEY: RhythmEnv,
    ShootingEnv.GAME_KEY: ShootingEnv,
}

__all__ = [
    "AudioSink",
    "BreakoutEnv",
    "CatchingEnv",
    "EffectEvent",
    "EffectKind",
    "EffectPlayer",
    "EffectQueue",
    "GAMES",
    "GameFlow",
    "GameState",
    "InputState",
    "JsonHighScoreStore",
    "JumpMode",
    "JumpingEnv",
    "ManualClock",
    "MemoryHighScoreStore",
    "RhythmEnv",
    "Scheduler",
    "ShootingEnv",
    "SystemClock",
    "UnknownLevelError",
]
