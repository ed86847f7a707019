from dataclasses import dataclass
from typing import Any, FrozenSet, Mapping, Optional

from .snapshots import (
    FILL_IN_THE_BLANK,
    MULTIPLE_CHOICE,
    SINGLE_CHOICE,
    TRUE_FALSE,
    QuestionSnapshot,
)

# Stand-in for a non-positive elapsed time, which the formula cannot divide by.
ZERO_ELAPSED_SEC = 0.001
SPEED_BONUS_WEIGHT = 0.5


@dataclass(frozen=True)
class AnswerSubmission:
    option_ids: FrozenSet[int] = frozenset()
    text: Optional[str] = None
    question_index: Optional[int] = None

    @classmethod
    def from_payload(cls, data: Optional[Mapping[str, Any]]) -> 'AnswerSubmission':
        """Build a submission from a client payload.

        Accepts ``option_ids`` (list) or a single ``option_id``, an optional
        free-text ``text`` and an optional ``question_index`` tag. Values that
        are not integers are ignored rather than rejected.
        """
        data = data or {}
        raw_ids = data.get('option_ids')
        if raw_ids is None and data.get('option_id') is not None:
            raw_ids = [data.get('option_id')]
        ids = set()
        for raw in raw_ids or []:
            try:
                ids.add(int(raw))
            except (TypeError, ValueError):
                continue
        text = data.get('text')
        index = data.get('question_index')
        try:
            index = int(index) if index is not None else None
        except (TypeError, ValueError):
            index = None
        return cls(
            option_ids=frozenset(ids),
            text=str(text) if text is not None else None,
            question_index=index,
        )


@dataclass(frozen=True)
class ScoreResult:
    is_correct: bool
    points_awarded: int


def is_answer_correct(question: QuestionSnapshot, submission: AnswerSubmission) -> bool:
    if question.type in (SINGLE_CHOICE, TRUE_FALSE):
        correct = question.correct_option_ids
        return len(correct) == 1 and submission.option_ids == frozenset(correct)
    if question.type == MULTIPLE_CHOICE:
        correct = frozenset(question.correct_option_ids)
        return bool(correct) and submission.option_ids == correct
    if question.type == FILL_IN_THE_BLANK:
        if submission.text is None:
            return False
        given = submission.text.strip().lower()
        return any(given == t.strip().lower() for t in question.correct_texts)
    return False


def speed_factor(elapsed_sec: float, time_limit_sec: float) -> float:
    # Unbounded as elapsed approaches zero. Kept as-is pending a product decision.
    elapsed = float(elapsed_sec)
    if elapsed <= 0:
        elapsed = ZERO_ELAPSED_SEC
    return max(0.0, (time_limit_sec - elapsed) / elapsed)


def score_answer(
    question: QuestionSnapshot,
    submission: AnswerSubmission,
    elapsed_sec: float,
    time_limit_sec: float,
) -> ScoreResult:
    """Score one submission for one question.

    Wrong or empty answers award 0 and never deduct. Correct answers award
    the question's points plus ``round(points * 0.5 * speed_factor)``.
    """
    if not is_answer_correct(question, submission):
        return ScoreResult(is_correct=False, points_awarded=0)
    base = int(question.points)
    bonus = int(round(base * SPEED_BONUS_WEIGHT * speed_factor(elapsed_sec, time_limit_sec)))
    return ScoreResult(is_correct=True, points_awarded=base + bonus)
