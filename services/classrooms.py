"""Classrooms, join codes, enrollments, posts and lessons."""

import logging
import random
import string
from datetime import datetime
from typing import Callable, Dict, List, Optional

from bson import ObjectId
from mongoengine.errors import NotUniqueError

from config import Config
from errors import ConflictError, NotFoundError, StoreFailure, ValidationFailure, store_errors
from models import Classroom, Enrollment, Lesson, Post, User

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.digits + string.ascii_uppercase


def generate_class_code(code_exists: Callable[[str], bool], rng: random.Random = random,
                        max_attempts: int = Config.CLASS_CODE_MAX_ATTEMPTS) -> str:
    """
    Draw codes like ``K3Q482`` until one is not taken.

    Three base-36 characters followed by a number between 100 and 999.
    """
    for _ in range(max_attempts):
        prefix = "".join(rng.choice(CODE_ALPHABET) for _ in range(3))
        code = f"{prefix}{rng.randint(100, 999)}"
        if not code_exists(code):
            return code
    raise StoreFailure("Could not generate a unique class code")


def _code_taken(code: str) -> bool:
    return Classroom.objects(code=code).first() is not None


def get_classroom(classroom_id: str) -> Classroom:
    if not ObjectId.is_valid(classroom_id):
        raise NotFoundError("Classroom not found")
    with store_errors("load classroom"):
        classroom = Classroom.objects(id=classroom_id).first()
    if classroom is None:
        raise NotFoundError("Classroom not found")
    return classroom


# PUBLIC_INTERFACE
def create_classroom(teacher_id: str, name: str, description: str = "",
                     rng: random.Random = random) -> Classroom:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("Please enter a class name")
    with store_errors("create classroom"):
        code = generate_class_code(_code_taken, rng=rng)
        classroom = Classroom(code=code, name=name, description=description or "",
                              teacher_id=teacher_id, created_at=datetime.utcnow())
        classroom.save()
    logger.info("Teacher %s created classroom %s", teacher_id, code)
    return classroom


def is_enrolled(classroom_id: str, student_id: str) -> bool:
    with store_errors("load enrollment"):
        return Enrollment.objects(classroom_id=classroom_id, student_id=student_id).first() is not None


# PUBLIC_INTERFACE
def join_classroom(student_id: str, code: str) -> Classroom:
    code = (code or "").strip().upper()
    if not code:
        raise ValidationFailure("Please enter a class code")
    with store_errors("load classroom"):
        classroom = Classroom.objects(code=code).first()
    if classroom is None:
        raise NotFoundError("Invalid class code")

    classroom_id = str(classroom.id)
    if is_enrolled(classroom_id, student_id):
        raise ConflictError("You are already enrolled in this class")
    try:
        with store_errors("join classroom"):
            Enrollment(classroom_id=classroom_id, student_id=student_id,
                       enrolled_at=datetime.utcnow()).save()
    except NotUniqueError:
        raise ConflictError("You are already enrolled in this class")
    logger.info("Student %s joined classroom %s", student_id, classroom.code)
    return classroom


def remove_student(classroom_id: str, student_id: str) -> None:
    with store_errors("remove student"):
        removed = Enrollment.objects(classroom_id=classroom_id, student_id=student_id).delete()
    if not removed:
        raise NotFoundError("Student is not enrolled in this class")


def teacher_classrooms(teacher_id: str) -> List[Dict]:
    with store_errors("load classrooms"):
        classrooms = list(Classroom.objects(teacher_id=teacher_id).order_by("-created_at"))
        return [
            {"classroom": c, "student_count": Enrollment.objects(classroom_id=str(c.id)).count()}
            for c in classrooms
        ]


def student_classrooms(student_id: str) -> List[Classroom]:
    with store_errors("load classrooms"):
        ids = [e.classroom_id for e in Enrollment.objects(student_id=student_id)]
        return list(Classroom.objects(id__in=ids)) if ids else []


def classroom_students(classroom_id: str) -> List[User]:
    with store_errors("load students"):
        ids = [e.student_id for e in Enrollment.objects(classroom_id=classroom_id)]
        ids = [i for i in ids if ObjectId.is_valid(i)]
        return list(User.objects(id__in=ids).order_by("name")) if ids else []


def create_post(classroom_id: str, author_id: str, content: str) -> Post:
    content = (content or "").strip()
    if not content:
        raise ValidationFailure("Please enter post content")
    post = Post(classroom_id=classroom_id, content=content, created_by=author_id,
                created_at=datetime.utcnow())
    with store_errors("create post"):
        post.save()
    return post


def list_posts(classroom_id: str) -> List[Post]:
    with store_errors("load posts"):
        return list(Post.objects(classroom_id=classroom_id).order_by("-created_at"))


def create_lesson(classroom_id: str, title: str, content: str = "",
                  file_url: Optional[str] = None, order: Optional[int] = None) -> Lesson:
    title = (title or "").strip()
    if not title:
        raise ValidationFailure("Please enter a lesson title")
    with store_errors("create lesson"):
        if order is None:
            order = Lesson.objects(classroom_id=classroom_id).count()
        lesson = Lesson(classroom_id=classroom_id, title=title, content=content or "",
                        file_url=file_url, order=order, created_at=datetime.utcnow())
        lesson.save()
    return lesson


def list_lessons(classroom_id: str) -> List[Lesson]:
    with store_errors("load lessons"):
        return list(Lesson.objects(classroom_id=classroom_id).order_by("order"))


def get_lesson(lesson_id: str) -> Lesson:
    if not ObjectId.is_valid(lesson_id):
        raise NotFoundError("Lesson not found")
    with store_errors("load lesson"):
        lesson = Lesson.objects(id=lesson_id).first()
    if lesson is None:
        raise NotFoundError("Lesson not found")
    return lesson
