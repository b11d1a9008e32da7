import asyncio
from datetime import datetime

import mongomock
import pytest
from mongoengine import connect, disconnect

from models import Attendance, Classroom, Enrollment, Lesson, Option, Post, Question, Quiz, QuizResult, User


@pytest.fixture
def db():
    disconnect()
    connect("classroom_test", host="mongodb://localhost", mongo_client_class=mongomock.MongoClient)
    yield
    for document in (User, Classroom, Enrollment, Post, Lesson, Quiz, QuizResult, Attendance):
        document.drop_collection()
    disconnect()


class Clock:
    """Settable stand-in for ``datetime.now``."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock(datetime(2024, 3, 14, 9, 30))


class InstantSleep:
    """Replaces ``asyncio.sleep`` in countdowns and counts the ticks."""

    def __init__(self):
        self.ticks = 0

    async def __call__(self, seconds):
        self.ticks += 1
        await asyncio.sleep(0)


@pytest.fixture
def instant_sleep():
    return InstantSleep()


class RecorderSpy:
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.attempts = []

    def record_quiz_attempt(self, student_id, classroom_id, quiz_id):
        self.attempts.append((student_id, classroom_id, quiz_id))
        return self.succeed


@pytest.fixture
def recorder_spy():
    return RecorderSpy()


def make_question(text, options, correct_answer, question_id=None):
    return Question(
        question_id=question_id,
        text=text,
        options=[Option(text=o) for o in options],
        correct_answer=correct_answer,
    )


@pytest.fixture
def make_quiz(db):
    def factory(questions=None, time_limit=None, title="T", classroom_id="class-1", created_by="teacher-1"):
        quiz = Quiz(
            title=title,
            classroom_id=classroom_id,
            created_by=created_by,
            time_limit=time_limit,
            questions=questions if questions is not None else [],
        )
        quiz.save()
        return quiz
    return factory


@pytest.fixture
def three_question_quiz(make_quiz):
    return make_quiz([
        make_question("2 + 2?", ["3", "4", "5"], 1),
        make_question("Capital of France?", ["Paris", "Rome"], 0),
        make_question("Largest planet?", ["Mars", "Venus", "Earth", "Jupiter"], 3),
    ])
