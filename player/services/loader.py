"""Question set loading."""
from __future__ import annotations

import logging
from typing import Sequence

import requests

from player.errors import LoadError
from player.models import Question, QuestionSet, QuestionsEnvelope
from player.services.backend_client import BackendClient
from player.services.deck import QuestionDeck

log = logging.getLogger(__name__)


class QuestionSetLoader:
    """Fetch one or many sets and flatten them into a ``QuestionDeck``.

    Sets are fetched one after another in request order. The first failure
    aborts the batch; nothing fetched before it is returned.
    """

    def __init__(self, client: BackendClient):
        self.client = client

    def load(self, level: str, week: str, set_ids: Sequence[str]) -> QuestionDeck:
        batches: list[tuple[QuestionSet, list[Question]]] = []
        for position, set_id in enumerate(set_ids):
            batches.append(self._fetch_set(level, week, set_id, position))

        deck = QuestionDeck.from_sets(batches)
        log.info(
            "Loaded %d questions from %d set(s) for level %s week %s",
            len(deck),
            len(deck.question_sets),
            level,
            week,
        )
        return deck

    def _fetch_set(
        self, level: str, week: str, set_id: str, position: int
    ) -> tuple[QuestionSet, list[Question]]:
        try:
            data = self.client.get_questions(level, week, set_id)
            envelope = QuestionsEnvelope.model_validate(data)
        except (requests.RequestException, ValueError) as exc:
            log.error("Failed to load question set %s: %s", set_id, exc)
            raise LoadError(f"Failed to load question set {set_id}", set_id=set_id) from exc

        question_set = QuestionSet(
            id=envelope.question_set.id,
            name=envelope.question_set.name,
            total_questions=len(envelope.questions),
            type=envelope.question_set.question_type.name,
            original_order=position,
        )
        return question_set, envelope.questions
