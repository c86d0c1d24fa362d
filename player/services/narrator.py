"""Spoken narration of questions and session events."""
from __future__ import annotations

import logging
from typing import Sequence

from player.config import PLAYBACK_SPEEDS, PREFERRED_VOICE_NAMES, SPEAK_EQUALS
from player.models import DigitItem, DisplayItem, EqualsItem, OperatorItem
from player.services.speech import SilentSpeech, SpeechBackend

log = logging.getLogger(__name__)


# Spoken words deliberately differ from the printed symbols ("less", "into").
OPERATOR_WORDS = {
    "+": "add",
    "-": "less",
    "*": "into",
    "/": "divide by",
}

OPERATOR_SYMBOLS = {
    "+": "+",
    "-": "-",
    "*": "×",
    "/": "÷",
}


def operator_word(operator: str) -> str:
    return OPERATOR_WORDS.get(operator, operator)


def operator_symbol(operator: str) -> str:
    return OPERATOR_SYMBOLS.get(operator, operator)


class Narrator:
    """Speaks at most one utterance at a time.

    Every call cancels the utterance in progress before starting the next one;
    nothing is queued. While muted every call is a no-op. Backend failures are
    logged and never reach the caller.
    """

    def __init__(
        self,
        backend: SpeechBackend | None = None,
        *,
        muted: bool = False,
        rate: float = 1.0,
        speak_equals: bool = SPEAK_EQUALS,
        preferred_voices: Sequence[str] = PREFERRED_VOICE_NAMES,
    ):
        self.backend = backend or SilentSpeech()
        self.muted = muted
        self.speak_equals = speak_equals
        self.preferred_voices = tuple(preferred_voices)
        self.rate = 1.0
        self.set_rate(rate)
        self.last_text: str | None = None
        self._announcement_voice: str | None = None
        self._voice_resolved = False

    def set_rate(self, rate: float) -> None:
        rate = float(rate)
        if rate not in PLAYBACK_SPEEDS:
            raise ValueError(
                f"Unsupported speed {rate}; choose one of {', '.join(map(str, PLAYBACK_SPEEDS))}"
            )
        self.rate = rate

    def set_muted(self, muted: bool) -> None:
        self.muted = muted
        if muted:
            self.cancel()

    def item_text(self, item: DisplayItem) -> str | None:
        """Text spoken for a display item, or None when it stays silent."""
        if isinstance(item, DigitItem):
            return str(item.value)
        if isinstance(item, OperatorItem):
            return operator_word(item.value)
        if isinstance(item, EqualsItem) and self.speak_equals:
            return "equals"
        return None

    def announcement_voice(self) -> str | None:
        """First available voice matching a preferred engine name."""
        if not self._voice_resolved:
            try:
                voices = self.backend.voices()
            except Exception as exc:
                log.warning("Could not list voices: %s", exc)
                voices = []
            self._announcement_voice = next(
                (
                    voice
                    for voice in voices
                    if any(name in voice for name in self.preferred_voices)
                ),
                None,
            )
            self._voice_resolved = True
        return self._announcement_voice

    def announce(self, text: str) -> None:
        if self.muted or not text:
            return
        self._speak(text, self.announcement_voice())

    def speak_item(self, item: DisplayItem) -> None:
        if self.muted:
            return
        text = self.item_text(item)
        if text is None:
            # the channel is still claimed so an older utterance stops
            self.cancel()
            return
        self._speak(text, None)

    def cancel(self) -> None:
        try:
            self.backend.cancel()
        except Exception as exc:
            log.warning("Speech cancel failed: %s", exc)

    def _speak(self, text: str, voice: str | None) -> None:
        self.cancel()
        self.last_text = text
        try:
            self.backend.speak(text, self.rate, voice)
        except Exception as exc:
            log.warning("Speech failed for %r: %s", text, exc)
