"""
Quiz taking: loading a quiz for a student, scoring, result persistence and
the transient in-progress session with its countdown.

A (quiz, student) pair moves NOT_STARTED -> IN_PROGRESS -> SUBMITTED. Only
SUBMITTED is persisted, as a ``QuizResult`` whose id is derived from the pair.
The result is written with a conditional insert, so whichever of a manual
submit and a timer auto-submit lands first is the one that counts.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from bson import ObjectId
from mongoengine.errors import NotUniqueError

from errors import ClassroomError, ConflictError, NotFoundError, StoreFailure, store_errors
from models import Question, Quiz, QuizResult
from services.attendance import AttendanceRecorder

logger = logging.getLogger(__name__)

class QuizState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"

@dataclass
class SubmissionOutcome:
    score: int
    total_questions: int
    answers: Dict[int, int] = field(default_factory=dict)
    already_submitted: bool = False

    @classmethod
    def from_result(cls, result: QuizResult, already_submitted=True):
        return cls(
            score=result.score,
            total_questions=result.total_questions,
            answers=decode_answers(result.answers),
            already_submitted=already_submitted,
        )

@dataclass
class QuizTakingState:
    quiz: Quiz
    prior_result: Optional[QuizResult] = None

    @property
    def already_submitted(self) -> bool:
        return self.prior_result is not None

    @property
    def time_limit_seconds(self) -> Optional[int]:
        if self.already_submitted or not self.quiz.time_limit:
            return None
        return self.quiz.time_limit * 60


def encode_answers(answers: Dict[int, int]) -> Dict[str, int]:
    return {str(index): int(option) for index, option in answers.items()}

def decode_answers(answers) -> Dict[int, int]:
    return {int(index): option for index, option in (answers or {}).items()}


def load_quiz(quiz_id: str) -> Quiz:
    if not ObjectId.is_valid(quiz_id):
        raise NotFoundError("Quiz not found")
    with store_errors("load quiz"):
        quiz = Quiz.objects(id=quiz_id).first()
    if quiz is None:
        raise NotFoundError("Quiz not found")
    normalize_question_ids(quiz.questions)
    return quiz

def normalize_question_ids(questions: List[Question]) -> None:
    """Give index-derived ids to questions stored without one. Not persisted."""
    for index, question in enumerate(questions):
        if not question.question_id:
            question.question_id = f"q_{index}"

def find_result(quiz_id: str, student_id: str) -> Optional[QuizResult]:
    with store_errors("load quiz result"):
        return QuizResult.objects(id=QuizResult.derive_id(quiz_id, student_id)).first()


# PUBLIC_INTERFACE
def fetch_quiz_for_taking(quiz_id: str, student_id: str) -> QuizTakingState:
    """
    Load a quiz for a student together with any result they already have.

    Raises:
        NotFoundError: the quiz does not exist; the caller must abandon the flow.
    """
    quiz = load_quiz(quiz_id)
    prior = find_result(str(quiz.id), student_id)
    return QuizTakingState(quiz=quiz, prior_result=prior)


# PUBLIC_INTERFACE
def score_answers(questions: List[Question], answers: Dict[int, int]) -> int:
    """Count questions whose recorded option equals the correct one. Unanswered ones never match."""
    return sum(
        1 for index, question in enumerate(questions)
        if answers.get(index) == question.correct_answer
    )


# PUBLIC_INTERFACE
def submit_quiz(quiz: Quiz, student_id: str, classroom_id: str, answers: Dict[int, int],
                recorder: Optional[AttendanceRecorder] = None) -> SubmissionOutcome:
    """
    Score the answers and persist the student's result.

    A result that already exists for the (quiz, student) pair is left alone
    and its stored outcome is returned with ``already_submitted`` set.

    Raises:
        StoreFailure: the result could not be written or read back.
    """
    quiz_id = str(quiz.id)
    score = score_answers(quiz.questions, answers)
    result = QuizResult(
        id=QuizResult.derive_id(quiz_id, student_id),
        quiz_id=quiz_id,
        student_id=student_id,
        classroom_id=classroom_id,
        answers=encode_answers(answers),
        score=score,
        total_questions=len(quiz.questions),
        submitted_at=datetime.utcnow(),
    )
    try:
        with store_errors("save quiz result"):
            result.save(force_insert=True)
    except NotUniqueError:
        logger.info("Quiz %s already submitted by student %s", quiz_id, student_id)
        existing = find_result(quiz_id, student_id)
        if existing is None:
            raise StoreFailure("Failed to load quiz result")
        return SubmissionOutcome.from_result(existing)

    logger.info("Student %s scored %d/%d on quiz %s", student_id, score, len(quiz.questions), quiz_id)
    if recorder is not None:
        recorder.record_quiz_attempt(student_id, classroom_id, quiz_id)
    return SubmissionOutcome(score=score, total_questions=len(quiz.questions), answers=dict(answers))


class QuizSession:
    """One student's in-progress attempt at one quiz."""

    def __init__(self, quiz: Quiz, student_id: str, classroom_id: str,
                 recorder: Optional[AttendanceRecorder] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 on_finish: Optional[Callable[["QuizSession"], None]] = None):
        self.quiz = quiz
        self.student_id = student_id
        self.classroom_id = classroom_id
        self.recorder = recorder
        self.answers: Dict[int, int] = {}
        self.state = QuizState.NOT_STARTED
        self.remaining_seconds = quiz.time_limit * 60 if quiz.time_limit else None
        self.outcome: Optional[SubmissionOutcome] = None
        self._sleep = sleep
        self._on_finish = on_finish
        self._timer: Optional[asyncio.Task] = None

    @property
    def quiz_id(self) -> str:
        return str(self.quiz.id)

    def start(self) -> None:
        """Begin the attempt. Timed quizzes start counting down; needs a running event loop."""
        if self.state is not QuizState.NOT_STARTED:
            return
        self.state = QuizState.IN_PROGRESS
        if self.remaining_seconds is not None:
            self._timer = asyncio.get_running_loop().create_task(self._countdown())

    def record_answer(self, question_index: int, option_index: int) -> None:
        if self.state is QuizState.SUBMITTED:
            raise ConflictError("Quiz already submitted")
        self.answers[question_index] = option_index

    def submit(self) -> SubmissionOutcome:
        if self.outcome is not None:
            return self.outcome
        outcome = submit_quiz(self.quiz, self.student_id, self.classroom_id,
                              self.answers, self.recorder)
        self.outcome = outcome
        self.state = QuizState.SUBMITTED
        self.cancel()
        if self._on_finish is not None:
            self._on_finish(self)
        return outcome

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self) -> None:
        """Wait for a running countdown to finish or be cancelled."""
        timer = self._timer
        if timer is None:
            return
        try:
            await timer
        except asyncio.CancelledError:
            pass

    async def _countdown(self) -> None:
        while self.remaining_seconds > 0:
            await self._sleep(1)
            self.remaining_seconds -= 1
        self._timer = None
        logger.info("Time is up on quiz %s for student %s, submitting", self.quiz_id, self.student_id)
        try:
            self.submit()
        except ClassroomError:
            logger.exception("Auto-submit failed for quiz %s, student %s", self.quiz_id, self.student_id)


class QuizSessionRegistry:
    """Running sessions keyed by (quiz id, student id)."""

    def __init__(self, recorder: Optional[AttendanceRecorder] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.recorder = recorder
        self.sleep = sleep
        self._sessions: Dict[tuple, QuizSession] = {}

    def open(self, quiz: Quiz, student_id: str, classroom_id: str) -> QuizSession:
        key = (str(quiz.id), student_id)
        session = self._sessions.get(key)
        if session is not None and session.state is not QuizState.SUBMITTED:
            return session
        session = QuizSession(quiz, student_id, classroom_id, recorder=self.recorder,
                              sleep=self.sleep, on_finish=self._discard)
        self._sessions[key] = session
        return session

    def get(self, quiz_id: str, student_id: str) -> Optional[QuizSession]:
        return self._sessions.get((quiz_id, student_id))

    def close(self, quiz_id: str, student_id: str) -> None:
        session = self._sessions.pop((quiz_id, student_id), None)
        if session is not None:
            session.cancel()

    def cancel_all(self) -> None:
        for session in self._sessions.values():
            session.cancel()
        self._sessions.clear()

    def __len__(self):
        return len(self._sessions)

    def _discard(self, session: QuizSession) -> None:
        key = (session.quiz_id, session.student_id)
        if self._sessions.get(key) is session:
            del self._sessions[key]
