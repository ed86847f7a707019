"""Immutable copies of quiz content taken when a live room is created."""

from dataclasses import dataclass
from typing import Tuple

SINGLE_CHOICE = 'single_choice'
MULTIPLE_CHOICE = 'multiple_choice'
TRUE_FALSE = 'true_false'
FILL_IN_THE_BLANK = 'fill_in_the_blank'

QUESTION_TYPES = (SINGLE_CHOICE, MULTIPLE_CHOICE, TRUE_FALSE, FILL_IN_THE_BLANK)


@dataclass(frozen=True)
class OptionSnapshot:
    id: int
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class QuestionSnapshot:
    id: int
    text: str
    type: str
    points: int
    options: Tuple[OptionSnapshot, ...] = ()

    @property
    def correct_option_ids(self) -> Tuple[int, ...]:
        return tuple(o.id for o in self.options if o.is_correct)

    @property
    def correct_texts(self) -> Tuple[str, ...]:
        return tuple(o.text for o in self.options if o.is_correct)


@dataclass(frozen=True)
class QuizSnapshot:
    id: int
    title: str
    questions: Tuple[QuestionSnapshot, ...] = ()

    @property
    def question_count(self) -> int:
        return len(self.questions)
