from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, EmailStr, Field

from config import Config


class UserBase(BaseModel):
    email: EmailStr
    name: str
    password: str

class StudentCreate(UserBase):
    school_id: Optional[str] = None

class TeacherCreate(UserBase):
    pass

class UserOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    school_id: Optional[str] = None

class Token(BaseModel):
    access_token: str
    token_type: str


class ClassroomCreate(BaseModel):
    name: str
    description: str = ""

class JoinClassroom(BaseModel):
    code: str

class ClassroomOut(BaseModel):
    id: str
    code: str
    name: str
    description: str = ""
    teacher_id: str
    created_at: Optional[datetime] = None
    student_count: Optional[int] = None

class PostCreate(BaseModel):
    content: str

class PostOut(BaseModel):
    id: str
    classroom_id: str
    content: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

class LessonCreate(BaseModel):
    title: str
    content: str = ""
    file_url: Optional[str] = None
    order: Optional[int] = None

class LessonOut(BaseModel):
    id: str
    classroom_id: str
    title: str
    content: str = ""
    file_url: Optional[str] = None
    order: int = 0

class LessonView(BaseModel):
    duration_seconds: int = Field(..., ge=0, description="Seconds spent on the lesson in this visit.")


class QuizCreate(BaseModel):
    title: str
    description: str = ""
    time_limit: Optional[int] = Field(
        default=Config.DEFAULT_QUIZ_TIME_LIMIT,
        description="Minutes allowed; null makes the quiz untimed.",
    )

class OptionIn(BaseModel):
    text: str
    image: Optional[str] = None

class QuestionIn(BaseModel):
    text: str
    options: List[OptionIn]
    correct_answer: int = 0
    image: Optional[str] = None

class OptionOut(BaseModel):
    text: str
    image: Optional[str] = None

class QuestionOut(BaseModel):
    id: str
    text: str
    image: Optional[str] = None
    options: List[OptionOut]
    correct_answer: Optional[int] = None

class QuizOut(BaseModel):
    id: str
    title: str
    description: str = ""
    classroom_id: str
    time_limit: Optional[int] = None
    created_at: Optional[datetime] = None
    questions: List[QuestionOut] = []

class QuizSummaryOut(BaseModel):
    id: str
    title: str
    description: str = ""
    time_limit: Optional[int] = None
    question_count: int
    total_attempts: Optional[int] = None
    average_score: Optional[float] = None
    submitted: Optional[bool] = None
    score: Optional[int] = None


class AnswerIn(BaseModel):
    question_index: int = Field(..., ge=0)
    option_index: int

class ResultOut(BaseModel):
    score: int
    total_questions: int
    answers: Dict[int, int] = {}
    already_submitted: bool = False

class QuizTakingOut(BaseModel):
    quiz: QuizOut
    state: str
    time_limit_seconds: Optional[int] = None
    remaining_seconds: Optional[int] = None
    result: Optional[ResultOut] = None

class StudentResultOut(BaseModel):
    student_id: str
    name: str
    school_id: Optional[str] = None
    score: int
    total_questions: int
    submitted_at: Optional[datetime] = None

class QuizResultsOut(BaseModel):
    quiz_id: str
    title: str
    total_questions: int
    total_attempts: int
    average_score: float
    results: List[StudentResultOut]

class AttendanceOut(BaseModel):
    student_id: str
    lesson_views: int
    lesson_seconds: int
    quiz_attempts: int
    days_active: int


def user_out(user) -> UserOut:
    return UserOut(id=str(user.id), email=user.email, name=user.name,
                   role=user.role, school_id=user.school_id)

def classroom_out(classroom, student_count=None) -> ClassroomOut:
    return ClassroomOut(
        id=str(classroom.id),
        code=classroom.code,
        name=classroom.name,
        description=classroom.description or "",
        teacher_id=classroom.teacher_id,
        created_at=classroom.created_at,
        student_count=student_count,
    )

def post_out(post) -> PostOut:
    return PostOut(id=str(post.id), classroom_id=post.classroom_id, content=post.content,
                   created_by=post.created_by, created_at=post.created_at)

def lesson_out(lesson) -> LessonOut:
    return LessonOut(id=str(lesson.id), classroom_id=lesson.classroom_id, title=lesson.title,
                     content=lesson.content or "", file_url=lesson.file_url, order=lesson.order or 0)

def quiz_out(quiz, reveal_answers=True) -> QuizOut:
    """Serialize a quiz; students taking it get the questions without the answers."""
    return QuizOut(
        id=str(quiz.id),
        title=quiz.title,
        description=quiz.description or "",
        classroom_id=quiz.classroom_id,
        time_limit=quiz.time_limit,
        created_at=quiz.created_at,
        questions=[
            QuestionOut(
                id=q.question_id or f"q_{i}",
                text=q.text or "",
                image=q.image,
                options=[OptionOut(text=o.text or "", image=o.image) for o in q.options],
                correct_answer=q.correct_answer if reveal_answers else None,
            )
            for i, q in enumerate(quiz.questions)
        ],
    )

def result_out(outcome) -> ResultOut:
    return ResultOut(score=outcome.score, total_questions=outcome.total_questions,
                     answers=outcome.answers, already_submitted=outcome.already_submitted)
