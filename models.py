from datetime import datetime
from mongoengine import Document, EmbeddedDocument, fields

ROLES = ["teacher", "student"]

LESSON_VIEW = "lesson_view"
QUIZ_ATTEMPT = "quiz_attempt"
ACTIVITY_TYPES = [LESSON_VIEW, QUIZ_ATTEMPT]

class User(Document):
    email = fields.EmailField(unique=True)
    name = fields.StringField()
    hashed_password = fields.StringField()
    role = fields.StringField(choices=ROLES)
    school_id = fields.StringField(required=False)

    meta = {"collection": "users"}

class Classroom(Document):
    code = fields.StringField(required=True, unique=True)
    name = fields.StringField(required=True)
    description = fields.StringField(default="")
    teacher_id = fields.StringField(required=True)
    created_at = fields.DateTimeField(default=datetime.utcnow)

    meta = {"collection": "classrooms", "indexes": ["teacher_id"]}

class Enrollment(Document):
    classroom_id = fields.StringField(required=True)
    student_id = fields.StringField(required=True)
    enrolled_at = fields.DateTimeField(default=datetime.utcnow)

    meta = {
        "collection": "class_enrollments",
        "indexes": [
            {"fields": ["classroom_id", "student_id"], "unique": True},
            "student_id",
        ],
    }

class Post(Document):
    classroom_id = fields.StringField(required=True)
    content = fields.StringField(required=True)
    created_by = fields.StringField()
    created_at = fields.DateTimeField(default=datetime.utcnow)

    meta = {"collection": "posts", "ordering": ["-created_at"]}

class Lesson(Document):
    classroom_id = fields.StringField(required=True)
    title = fields.StringField(required=True)
    content = fields.StringField(default="")
    file_url = fields.StringField()
    order = fields.IntField(default=0)
    created_at = fields.DateTimeField(default=datetime.utcnow)

    meta = {"collection": "lessons", "ordering": ["order"]}

class Option(EmbeddedDocument):
    text = fields.StringField(default="")
    image = fields.StringField()

class Question(EmbeddedDocument):
    question_id = fields.StringField()
    text = fields.StringField(default="")
    image = fields.StringField()
    options = fields.EmbeddedDocumentListField(Option)
    correct_answer = fields.IntField(default=0)

class Quiz(Document):
    title = fields.StringField(required=True)
    description = fields.StringField(default="")
    questions = fields.EmbeddedDocumentListField(Question)
    # Minutes; None means the quiz is untimed.
    time_limit = fields.IntField(min_value=1, null=True)
    classroom_id = fields.StringField(required=True)
    created_by = fields.StringField()
    created_at = fields.DateTimeField(default=datetime.utcnow)

    meta = {"collection": "quizzes", "indexes": ["classroom_id"]}

class QuizResult(Document):
    # Derived as "<quiz_id>_<student_id>": one result per student per quiz.
    id = fields.StringField(primary_key=True)
    quiz_id = fields.StringField(required=True)
    student_id = fields.StringField(required=True)
    classroom_id = fields.StringField()
    # Question index -> option index. Mongo map keys must be strings.
    answers = fields.MapField(fields.IntField())
    score = fields.IntField(default=0)
    total_questions = fields.IntField(default=0)
    submitted_at = fields.DateTimeField()

    meta = {"collection": "quiz_results", "indexes": ["quiz_id", "student_id"]}

    @staticmethod
    def derive_id(quiz_id, student_id):
        return f"{quiz_id}_{student_id}"

class Attendance(Document):
    # Derived from (student, classroom, activity type, activity, day).
    id = fields.StringField(primary_key=True)
    student_id = fields.StringField(required=True)
    classroom_id = fields.StringField(required=True)
    activity_type = fields.StringField(choices=ACTIVITY_TYPES, required=True)
    activity_id = fields.StringField(required=True)
    day = fields.StringField(required=True)
    date = fields.DateTimeField()
    duration = fields.IntField()

    meta = {"collection": "attendances", "indexes": ["classroom_id", "student_id"]}

    @staticmethod
    def derive_id(student_id, classroom_id, activity_type, activity_id, day):
        return "_".join([student_id, classroom_id, activity_type, activity_id, day])
