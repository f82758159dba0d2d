from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine


class GameState(StrEnum):
    MENU = "menu"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "game_over"
    VICTORY = "victory"
    FINISHED = "finished"


TERMINAL_STATES = frozenset({GameState.GAME_OVER, GameState.VICTORY, GameState.FINISHED})


class GameFlow(StateMachine):
    """Legal lifecycle transitions shared by every minigame.

    - menu -> playing -> (paused <-> playing) -> game_over | victory | finished
    - any state can go back to the menu; terminal states can start a new run.
    The engine owns the world; this machine only guards which control is legal.
    """

    menu = State(GameState.MENU.value, value=GameState.MENU.value, initial=True)
    playing = State(GameState.PLAYING.value, value=GameState.PLAYING.value)
    paused = State(GameState.PAUSED.value, value=GameState.PAUSED.value)
    game_over = State(GameState.GAME_OVER.value, value=GameState.GAME_OVER.value)
    victory = State(GameState.VICTORY.value, value=GameState.VICTORY.value)
    finished = State(GameState.FINISHED.value, value=GameState.FINISHED.value)

    allow_event_without_transition = False

    begin = playing.from_(menu, game_over, victory, finished)
    pause = playing.to(paused)
    resume = paused.to(playing)
    lose = playing.to(game_over)
    win = playing.to(victory)
    finish = playing.to(finished)
    to_menu = menu.to.itself() | menu.from_(playing, paused, game_over, victory, finished)

    @property
    def game_state(self) -> GameState:
        return GameState(str(self.current_state_value))
