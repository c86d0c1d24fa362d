"""Flat, globally indexed question list with its set index."""
from __future__ import annotations

from typing import Iterable, Sequence

from player.models import Question, QuestionSet


class QuestionDeck:
    """Questions of one session, concatenated in set order.

    The membership index (set position -> global question positions) is built
    once per load or reorder instead of being filtered on every lookup.
    """

    def __init__(self, question_sets: Sequence[QuestionSet], questions: Sequence[Question]):
        self.question_sets: list[QuestionSet] = list(question_sets)
        self.questions: list[Question] = list(questions)
        self._members: dict[int, list[int]] = {
            index: [] for index in range(len(self.question_sets))
        }
        self._positions: dict[tuple[str, str], int] = {}
        for position, question in enumerate(self.questions):
            self._members.setdefault(question.set_index, []).append(position)
            self._positions[question.identity] = position

    @classmethod
    def from_sets(
        cls, batches: Iterable[tuple[QuestionSet, Sequence[Question]]]
    ) -> "QuestionDeck":
        """Tag and concatenate sets in the given order."""
        sets: list[QuestionSet] = []
        flat: list[Question] = []
        for set_index, (question_set, questions) in enumerate(batches):
            sets.append(
                question_set.model_copy(
                    update={
                        "original_order": set_index,
                        "total_questions": len(questions),
                    }
                )
            )
            for in_set_index, question in enumerate(questions):
                flat.append(
                    question.model_copy(
                        update={
                            "set_id": question_set.id,
                            "set_index": set_index,
                            "question_in_set_index": in_set_index,
                            "global_index": len(flat),
                        }
                    )
                )
        return cls(sets, flat)

    @classmethod
    def empty(cls) -> "QuestionDeck":
        return cls([], [])

    def __len__(self) -> int:
        return len(self.questions)

    @property
    def is_empty(self) -> bool:
        return not self.questions

    @property
    def is_multi_set(self) -> bool:
        return len(self.question_sets) > 1

    @property
    def last_index(self) -> int:
        return len(self.questions) - 1

    def questions_in_set(self, set_index: int) -> list[Question]:
        return [self.questions[i] for i in self._members.get(set_index, [])]

    def first_index_of_set(self, set_index: int) -> int | None:
        members = self._members.get(set_index)
        if not members:
            return None
        return members[0]

    def is_last_in_set(self, question: Question) -> bool:
        members = self._members.get(question.set_index, [])
        return bool(members) and question.question_in_set_index == len(members) - 1

    def index_of(self, question: Question) -> int | None:
        return self._positions.get(question.identity)

    def set_name(self, set_index: int) -> str | None:
        if 0 <= set_index < len(self.question_sets):
            return self.question_sets[set_index].name
        return None

    def reordered(self, set_ids: Sequence[int | str]) -> "QuestionDeck":
        """Return a new deck with sets played in ``set_ids`` order.

        Raises:
            ValueError: if ``set_ids`` is not a permutation of the loaded sets.
        """
        by_id = {str(question_set.id): question_set for question_set in self.question_sets}
        wanted = [str(set_id) for set_id in set_ids]
        if len(wanted) != len(by_id) or set(wanted) != set(by_id):
            raise ValueError("Set order must list every loaded set exactly once")

        grouped: dict[str, list[Question]] = {key: [] for key in by_id}
        for question in self.questions:
            grouped[str(question.set_id)].append(question)

        return QuestionDeck.from_sets((by_id[key], grouped[key]) for key in wanted)
