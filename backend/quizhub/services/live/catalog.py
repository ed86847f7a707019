import logging
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import selectinload

from quizhub import db
from quizhub.models import Question, Quiz, QuizAttempt
from .snapshots import OptionSnapshot, QuestionSnapshot, QuizSnapshot

logger = logging.getLogger(__name__)


def snapshot_quiz(quiz: Quiz) -> QuizSnapshot:
    """Copy a loaded quiz into frozen snapshots detached from the session."""
    questions = tuple(
        QuestionSnapshot(
            id=q.id,
            text=q.text,
            type=q.type,
            points=int(q.points or 0),
            options=tuple(OptionSnapshot(id=o.id, text=o.text, is_correct=bool(o.is_correct)) for o in q.options),
        )
        for q in quiz.questions
    )
    return QuizSnapshot(id=quiz.id, title=quiz.title, questions=questions)


class SqlQuizCatalog:
    """Read quiz content and append live results through Flask-SQLAlchemy."""

    def __init__(self, app=None):
        self.app = app

    def fetch_quiz_with_questions(self, quiz_id) -> Optional[QuizSnapshot]:
        try:
            quiz_id = int(quiz_id)
        except (TypeError, ValueError):
            return None
        quiz = (
            Quiz.query.options(selectinload(Quiz.questions).selectinload(Question.options))
            .filter_by(id=quiz_id)
            .first()
        )
        if not quiz:
            return None
        return snapshot_quiz(quiz)

    def record_results(self, quiz_id: int, results: Iterable[Tuple[int, int]]) -> None:
        """Append one live attempt per ``(user_id, score)`` pair.

        Called from timer jobs, so it pushes its own app context.
        """
        with self.app.app_context():
            try:
                for user_id, score in results:
                    db.session.add(QuizAttempt(user_id=user_id, quiz_id=quiz_id, score=score, mode='live'))
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
