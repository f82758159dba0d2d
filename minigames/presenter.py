from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from loguru import logger

from minigames.effects import EffectEvent, EffectKind


class AudioSink(Protocol):
    def play_effect(self, kind: str, params: Mapping[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class Tone:
    frequencies: tuple[float, ...]  # played one after another when more than one
    waveform: str
    gain: float
    duration: float


TONES = {
    EffectKind.BRICK_DESTROYED: Tone((800,), "square", 0.3, 0.1),
    EffectKind.PADDLE_HIT: Tone((400,), "sine", 0.2, 0.05),
    EffectKind.LEVEL_COMPLETE: Tone((440, 554, 659), "sine", 0.3, 0.2),
    EffectKind.LIFE_LOST: Tone((200,), "sawtooth", 0.3, 0.2),
    EffectKind.FRUIT_CAUGHT: Tone((800,), "square", 0.3, 0.1),
    EffectKind.FRUIT_MISSED: Tone((200,), "sawtooth", 0.15, 0.2),
    EffectKind.NOTE_MISSED: Tone((200,), "sawtooth", 0.15, 0.2),
    EffectKind.TARGET_HIT: Tone((600,), "square", 0.3, 0.1),
    EffectKind.SHOT_MISSED: Tone((200,), "sawtooth", 0.1, 0.05),
    EffectKind.GAME_OVER: Tone((200,), "sawtooth", 0.5, 0.5),
    EffectKind.VICTORY: Tone((440, 554, 659), "sine", 0.3, 0.2),
}

NOTE_HIT_TONES = {
    "perfect": Tone((880,), "sine", 0.2, 0.1),
    "great": Tone((660,), "sine", 0.2, 0.1),
    "good": Tone((440,), "sine", 0.2, 0.1),
}

BEAT_TONE = Tone((440,), "sine", 0.1, 0.1)
ACCENT_BEAT_TONE = Tone((220,), "sine", 0.1, 0.1)


def tone_for(event: EffectEvent) -> Tone | None:
    if event.kind is EffectKind.NOTE_HIT:
        return NOTE_HIT_TONES.get(str(event.payload.get("accuracy")))
    if event.kind is EffectKind.BEAT:
        return ACCENT_BEAT_TONE if event.payload.get("accent") else BEAT_TONE
    return TONES.get(event.kind)


class EffectPlayer:
    """Drains an engine's effect queue into an audio sink.

    Sound is best effort: a sink that raises loses that one event and the
    game keeps running.
    """

    def __init__(self, sink: AudioSink, volume: float = 1.0):
        if not 0 <= volume <= 1:
            raise ValueError("volume must be within [0, 1]")
        self.sink = sink
        self.volume = volume
        self.muted = False

    def pump(self, engine) -> list[EffectEvent]:
        """Drain `engine` once and play everything. Returns the drained events for particles."""
        events = engine.drain_effect_events()
        for event in events:
            self.play(event)
        return events

    def play(self, event: EffectEvent) -> bool:
        if self.muted:
            return False

        params: dict[str, Any] = dict(event.payload)
        tone = tone_for(event)
        if tone is not None:
            params.update(
                frequencies=tone.frequencies,
                waveform=tone.waveform,
                gain=tone.gain * self.volume,
                duration=tone.duration,
            )
        elif event.kind is not EffectKind.CHORD:
            # Nothing to hear, e.g. a meteor
            return False

        try:
            self.sink.play_effect(event.kind.value, params)
        except Exception:
            logger.opt(exception=True).debug(f"Audio sink failed on {event.kind.value}, dropping it")
            return False
        return True
