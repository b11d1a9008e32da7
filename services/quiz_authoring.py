"""Quiz creation, question editing and the teacher-side result views."""

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId

from errors import NotFoundError, ValidationFailure, store_errors
from models import Option, Question, Quiz, QuizResult, User
from services.quiz_engine import load_quiz, normalize_question_ids

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 4


def new_question_id() -> str:
    return f"question_{uuid.uuid4().hex[:12]}"


class QuizEditor:
    """
    Edits a quiz's questions in memory; nothing is written until ``save``.

    Options are passed as dicts with ``text`` and an optional ``image``.
    """

    def __init__(self, quiz: Quiz):
        self.quiz = quiz
        normalize_question_ids(quiz.questions)
        self.questions: List[Question] = [self._copy(q) for q in quiz.questions]

    @classmethod
    def load(cls, quiz_id: str) -> "QuizEditor":
        return cls(load_quiz(quiz_id))

    def add_question(self) -> int:
        self.questions.append(Question(
            question_id=new_question_id(),
            text="",
            options=[Option(text=""), Option(text="")],
            correct_answer=0,
        ))
        return len(self.questions) - 1

    def edit_question(self, index: int, text: str, options: List[Dict],
                      correct_answer: int = 0, image: Optional[str] = None) -> Question:
        current = self._question(index)
        candidate = Question(
            question_id=current.question_id,
            text=(text or "").strip(),
            image=image,
            options=[Option(text=(o.get("text") or "").strip(), image=o.get("image")) for o in options],
            correct_answer=correct_answer,
        )
        self.validate_question(candidate, index)
        self.questions[index] = candidate
        return candidate

    def delete_question(self, index: int) -> None:
        self._question(index)
        self.questions.pop(index)

    def add_option(self, question_index: int) -> int:
        question = self._question(question_index)
        if len(question.options) >= MAX_OPTIONS:
            raise ValidationFailure(f"A question can have at most {MAX_OPTIONS} options")
        question.options.append(Option(text=""))
        return len(question.options) - 1

    def remove_option(self, question_index: int, option_index: int) -> None:
        question = self._question(question_index)
        self._option(question, option_index)
        if len(question.options) <= MIN_OPTIONS:
            raise ValidationFailure(f"A question needs at least {MIN_OPTIONS} options")
        question.options.pop(option_index)
        # Keep pointing at the same option, or fall back to the first one.
        if question.correct_answer == option_index:
            question.correct_answer = 0
        elif question.correct_answer > option_index:
            question.correct_answer -= 1

    def edit_option(self, question_index: int, option_index: int, text: str,
                    image: Optional[str] = None) -> None:
        question = self._question(question_index)
        option = self._option(question, option_index)
        option.text = text
        option.image = image

    def save(self) -> Quiz:
        """Validate every question, then write the whole sequence in one update."""
        for index, question in enumerate(self.questions):
            self.validate_question(question, index)
        with store_errors("save quiz"):
            Quiz.objects(id=self.quiz.id).update_one(set__questions=self.questions)
        self.quiz.questions = [self._copy(q) for q in self.questions]
        logger.info("Saved %d questions on quiz %s", len(self.questions), self.quiz.id)
        return self.quiz

    @staticmethod
    def validate_question(question: Question, index: int) -> None:
        label = f"Question {index + 1}"
        if not (question.text or "").strip():
            raise ValidationFailure(f"{label}: please enter question text")
        if not MIN_OPTIONS <= len(question.options) <= MAX_OPTIONS:
            raise ValidationFailure(f"{label}: needs between {MIN_OPTIONS} and {MAX_OPTIONS} options")
        if any(not (o.text or "").strip() for o in question.options):
            raise ValidationFailure(f"{label}: please fill in all option texts")
        if not 0 <= question.correct_answer < len(question.options):
            raise ValidationFailure(f"{label}: correct answer must point at one of its options")

    def _question(self, index: int) -> Question:
        if not 0 <= index < len(self.questions):
            raise NotFoundError(f"Question index {index} out of range")
        return self.questions[index]

    @staticmethod
    def _option(question: Question, index: int) -> Option:
        if not 0 <= index < len(question.options):
            raise NotFoundError(f"Option index {index} out of range")
        return question.options[index]

    @staticmethod
    def _copy(question: Question) -> Question:
        return Question(
            question_id=question.question_id,
            text=question.text,
            image=question.image,
            options=[Option(text=o.text, image=o.image) for o in question.options],
            correct_answer=question.correct_answer,
        )


# PUBLIC_INTERFACE
def create_quiz(classroom_id: str, teacher_id: str, title: str, description: str = "",
                time_limit: Optional[int] = None) -> Quiz:
    title = (title or "").strip()
    if not title:
        raise ValidationFailure("Please enter a quiz title")
    if time_limit is not None and time_limit <= 0:
        raise ValidationFailure("Time limit must be a positive number of minutes")
    quiz = Quiz(
        title=title,
        description=description or "",
        classroom_id=classroom_id,
        created_by=teacher_id,
        questions=[],
        time_limit=time_limit,
        created_at=datetime.utcnow(),
    )
    with store_errors("create quiz"):
        quiz.save()
    logger.info("Teacher %s created quiz %s in classroom %s", teacher_id, quiz.id, classroom_id)
    return quiz


def list_quizzes(classroom_id: str) -> List[Dict]:
    """Quizzes of a classroom with their attempt count and average score."""
    with store_errors("load quizzes"):
        quizzes = list(Quiz.objects(classroom_id=classroom_id).order_by("-created_at"))
        rows = []
        for quiz in quizzes:
            scores = [r.score for r in QuizResult.objects(quiz_id=str(quiz.id)).only("score")]
            rows.append({
                "quiz": quiz,
                "total_attempts": len(scores),
                "average_score": round(sum(scores) / len(scores), 1) if scores else None,
            })
    return rows


def quiz_results(quiz_id: str) -> Dict:
    """All results of a quiz, newest first, with the students' names."""
    quiz = load_quiz(quiz_id)
    with store_errors("load quiz results"):
        results = list(QuizResult.objects(quiz_id=str(quiz.id)).order_by("-submitted_at"))
        student_ids = [sid for sid in {r.student_id for r in results} if ObjectId.is_valid(sid)]
        students = {str(u.id): u for u in User.objects(id__in=student_ids)} if student_ids else {}

    rows = []
    for result in results:
        student = students.get(result.student_id)
        rows.append({
            "student_id": result.student_id,
            "name": student.name if student else "Unknown",
            "school_id": student.school_id if student else None,
            "score": result.score,
            "total_questions": result.total_questions,
            "submitted_at": result.submitted_at,
        })

    total = len(rows)
    average = sum(r["score"] for r in rows) / total if total else 0
    return {"quiz": quiz, "results": rows, "total_attempts": total, "average_score": round(average, 1)}


def delete_quiz(quiz_id: str) -> None:
    """Delete a quiz together with every result recorded for it."""
    quiz = load_quiz(quiz_id)
    with store_errors("delete quiz"):
        QuizResult.objects(quiz_id=str(quiz.id)).delete()
        quiz.delete()
    logger.info("Deleted quiz %s and its results", quiz_id)
