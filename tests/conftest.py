from typing import Callable

import pytest
import requests

from player.models import Question
from player.services.loader import QuestionSetLoader
from player.services.narrator import Narrator
from player.services.scheduler import VirtualScheduler
from player.services.session_controller import SessionController
from player.services.speech import SpeechBackend


def sequence_payload(tokens: str) -> list[dict[str, object]]:
    """Build a display sequence from a compact string like ``"3+4="``."""
    items: list[dict[str, object]] = []
    for position, token in enumerate(tokens.split()):
        if token == "=":
            items.append({"type": "equals", "position": position})
        elif token in {"+", "-", "*", "/"}:
            items.append({"type": "operator", "value": token, "position": position})
        else:
            items.append({"type": "digit", "value": int(token), "position": position})
    return items


def questions_payload(set_id: int, name: str, specs: list[tuple[str, int]]) -> dict[str, object]:
    """Backend ``data`` envelope for one set. ``specs`` is ``[(tokens, time_limit)]``."""
    return {
        "question_set": {
            "id": set_id,
            "name": name,
            "question_type": {"name": "addition"},
        },
        "questions": [
            {
                "id": set_id * 100 + number,
                "question_number": number,
                "display_sequence": sequence_payload(tokens),
                "time_limit": time_limit,
                "answer": sum(int(t) for t in tokens.split() if t.isdigit()),
                "formatted_question": tokens,
            }
            for number, (tokens, time_limit) in enumerate(specs, start=1)
        ],
    }


def make_question(tokens: str = "3 + 4", time_limit: int = 9, **extra) -> Question:
    return Question.model_validate(
        {
            "id": extra.pop("id", 1),
            "display_sequence": sequence_payload(tokens),
            "time_limit": time_limit,
            **extra,
        }
    )


class FakeClient:
    """Stands in for ``BackendClient``; serves canned envelopes per set id."""

    def __init__(self, payloads: dict[str, object] | None = None):
        self.payloads = payloads or {}
        self.calls: list[tuple[str, str, str]] = []

    def get_questions(self, level: str, week: str, set_id: str) -> dict[str, object]:
        self.calls.append((level, week, set_id))
        payload = self.payloads.get(str(set_id))
        if isinstance(payload, Exception):
            raise payload
        if payload is None:
            raise requests.HTTPError(f"404 for set {set_id}")
        return payload

    def close(self) -> None:
        return None


class RecordingSpeech(SpeechBackend):
    def __init__(self, voices: list[str] | None = None):
        self._voices = voices or []
        self.spoken: list[tuple[str, float, str | None]] = []
        self.cancels = 0

    def voices(self) -> list[str]:
        return list(self._voices)

    def speak(self, text: str, rate: float = 1.0, voice: str | None = None) -> None:
        self.spoken.append((text, rate, voice))

    def cancel(self) -> None:
        self.cancels += 1

    @property
    def texts(self) -> list[str]:
        return [text for text, _, _ in self.spoken]


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def speech() -> RecordingSpeech:
    return RecordingSpeech(voices=["Alex", "Google US English"])


@pytest.fixture
def narrator(speech: RecordingSpeech) -> Narrator:
    return Narrator(speech)


@pytest.fixture
def two_sets_client() -> FakeClient:
    return FakeClient(
        {
            "5": questions_payload(5, "Warm up", [("1 + 2 =", 9), ("4 - 1 =", 9)]),
            "7": questions_payload(7, "Speed round", [("2 * 3", 4), ("8 / 2", 4), ("5 + 5", 4)]),
        }
    )


@pytest.fixture
def make_controller(
    scheduler: VirtualScheduler, narrator: Narrator
) -> Callable[..., SessionController]:
    def factory(client: FakeClient, **kwargs) -> SessionController:
        kwargs.setdefault("spawn", lambda target, *args: target(*args))
        return SessionController(QuestionSetLoader(client), scheduler, narrator, **kwargs)

    return factory
