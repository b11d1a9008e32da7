from typing import List
from fastapi import APIRouter, Depends, Form, HTTPException, Response, status
from auth import authenticate, get_current_teacher, login_response, register_user
from errors import ValidationFailure
from models import User
from schemas import (
    AttendanceOut, ClassroomCreate, ClassroomOut, LessonCreate, LessonOut, OptionIn, PostCreate,
    PostOut, QuestionIn, QuizCreate, QuizOut, QuizResultsOut, QuizSummaryOut, StudentResultOut,
    TeacherCreate, UserOut, classroom_out, lesson_out, post_out, quiz_out, user_out,
)
from services import classrooms
from services.attendance import attendance_summary
from services.quiz_authoring import QuizEditor, create_quiz, delete_quiz, list_quizzes, quiz_results
from services.quiz_engine import load_quiz

router = APIRouter()

def owned_classroom(classroom_id: str, teacher: User):
    classroom = classrooms.get_classroom(classroom_id)
    if classroom.teacher_id != str(teacher.id):
        raise HTTPException(status_code=403, detail="You don't own this classroom")
    return classroom

def owned_quiz(quiz_id: str, teacher: User):
    quiz = load_quiz(quiz_id)
    if quiz.created_by != str(teacher.id):
        raise HTTPException(status_code=403, detail="You don't own this quiz")
    return quiz

@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def teacher_signup(body: TeacherCreate):
    user = register_user("teacher", body.name, body.email, body.password)
    return user_out(user)

@router.post("/login")
async def teacher_login(email: str = Form(...), password: str = Form(...)):
    user = authenticate("teacher", email, password)
    return login_response(user)

@router.get("/logout")
async def teacher_logout(response: Response):
    response.delete_cookie(key="access_token")
    return {"detail": "Logged out"}

@router.get("/me", response_model=UserOut)
async def teacher_profile(current_user: User = Depends(get_current_teacher)):
    return user_out(current_user)

# --- Classrooms ---

@router.get("/classrooms", response_model=List[ClassroomOut])
async def my_classrooms(current_user: User = Depends(get_current_teacher)):
    rows = classrooms.teacher_classrooms(str(current_user.id))
    return [classroom_out(r["classroom"], r["student_count"]) for r in rows]

@router.post("/classrooms", response_model=ClassroomOut, status_code=status.HTTP_201_CREATED)
async def new_classroom(body: ClassroomCreate, current_user: User = Depends(get_current_teacher)):
    classroom = classrooms.create_classroom(str(current_user.id), body.name, body.description)
    return classroom_out(classroom, 0)

@router.get("/classrooms/{classroom_id}/students", response_model=List[UserOut])
async def classroom_students(classroom_id: str, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    return [user_out(u) for u in classrooms.classroom_students(classroom_id)]

@router.delete("/classrooms/{classroom_id}/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_student(classroom_id: str, student_id: str, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    classrooms.remove_student(classroom_id, student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/classrooms/{classroom_id}/posts", response_model=List[PostOut])
async def classroom_posts(classroom_id: str, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    return [post_out(p) for p in classrooms.list_posts(classroom_id)]

@router.post("/classrooms/{classroom_id}/posts", response_model=PostOut, status_code=status.HTTP_201_CREATED)
async def new_post(classroom_id: str, body: PostCreate, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    return post_out(classrooms.create_post(classroom_id, str(current_user.id), body.content))

@router.get("/classrooms/{classroom_id}/lessons", response_model=List[LessonOut])
async def classroom_lessons(classroom_id: str, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    return [lesson_out(l) for l in classrooms.list_lessons(classroom_id)]

@router.post("/classrooms/{classroom_id}/lessons", response_model=LessonOut, status_code=status.HTTP_201_CREATED)
async def new_lesson(classroom_id: str, body: LessonCreate, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    lesson = classrooms.create_lesson(classroom_id, body.title, body.content, body.file_url, body.order)
    return lesson_out(lesson)

@router.get("/classrooms/{classroom_id}/attendance", response_model=List[AttendanceOut])
async def classroom_attendance(classroom_id: str, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    return attendance_summary(classroom_id)

# --- Quizzes ---

@router.get("/classrooms/{classroom_id}/quizzes", response_model=List[QuizSummaryOut])
async def classroom_quizzes(classroom_id: str, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    return [
        QuizSummaryOut(
            id=str(row["quiz"].id),
            title=row["quiz"].title,
            description=row["quiz"].description or "",
            time_limit=row["quiz"].time_limit,
            question_count=len(row["quiz"].questions),
            total_attempts=row["total_attempts"],
            average_score=row["average_score"],
        )
        for row in list_quizzes(classroom_id)
    ]

@router.post("/classrooms/{classroom_id}/quizzes", response_model=QuizOut, status_code=status.HTTP_201_CREATED)
async def new_quiz(classroom_id: str, body: QuizCreate, current_user: User = Depends(get_current_teacher)):
    owned_classroom(classroom_id, current_user)
    quiz = create_quiz(classroom_id, str(current_user.id), body.title, body.description, body.time_limit)
    return quiz_out(quiz)

@router.get("/quizzes/{quiz_id}", response_model=QuizOut)
async def quiz_detail(quiz_id: str, current_user: User = Depends(get_current_teacher)):
    return quiz_out(owned_quiz(quiz_id, current_user))

@router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_quiz(quiz_id: str, current_user: User = Depends(get_current_teacher)):
    owned_quiz(quiz_id, current_user)
    delete_quiz(quiz_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/quizzes/{quiz_id}/results", response_model=QuizResultsOut)
async def quiz_details(quiz_id: str, current_user: User = Depends(get_current_teacher)):
    owned_quiz(quiz_id, current_user)
    report = quiz_results(quiz_id)
    quiz = report["quiz"]
    return QuizResultsOut(
        quiz_id=str(quiz.id),
        title=quiz.title,
        total_questions=len(quiz.questions),
        total_attempts=report["total_attempts"],
        average_score=report["average_score"],
        results=[StudentResultOut(**row) for row in report["results"]],
    )

def _options(question: QuestionIn):
    return [o.model_dump() for o in question.options]

@router.put("/quizzes/{quiz_id}/questions", response_model=QuizOut)
async def replace_questions(quiz_id: str, questions: List[QuestionIn],
                            current_user: User = Depends(get_current_teacher)):
    editor = QuizEditor(owned_quiz(quiz_id, current_user))
    editor.questions = []
    for question in questions:
        index = editor.add_question()
        editor.edit_question(index, question.text, _options(question), question.correct_answer, question.image)
    return quiz_out(editor.save())

@router.post("/quizzes/{quiz_id}/questions", response_model=QuizOut, status_code=status.HTTP_201_CREATED)
async def add_question(quiz_id: str, question: QuestionIn, current_user: User = Depends(get_current_teacher)):
    editor = QuizEditor(owned_quiz(quiz_id, current_user))
    index = editor.add_question()
    editor.edit_question(index, question.text, _options(question), question.correct_answer, question.image)
    return quiz_out(editor.save())

@router.put("/quizzes/{quiz_id}/questions/{index}", response_model=QuizOut)
async def edit_question(quiz_id: str, index: int, question: QuestionIn,
                        current_user: User = Depends(get_current_teacher)):
    editor = QuizEditor(owned_quiz(quiz_id, current_user))
    editor.edit_question(index, question.text, _options(question), question.correct_answer, question.image)
    return quiz_out(editor.save())

@router.delete("/quizzes/{quiz_id}/questions/{index}", response_model=QuizOut)
async def delete_question(quiz_id: str, index: int, current_user: User = Depends(get_current_teacher)):
    editor = QuizEditor(owned_quiz(quiz_id, current_user))
    editor.delete_question(index)
    return quiz_out(editor.save())

@router.post("/quizzes/{quiz_id}/questions/{index}/options", response_model=QuizOut)
async def add_option(quiz_id: str, index: int, option: OptionIn,
                     current_user: User = Depends(get_current_teacher)):
    if not option.text.strip():
        raise ValidationFailure("Please fill in the option text")
    editor = QuizEditor(owned_quiz(quiz_id, current_user))
    option_index = editor.add_option(index)
    editor.edit_option(index, option_index, option.text.strip(), option.image)
    return quiz_out(editor.save())

@router.delete("/quizzes/{quiz_id}/questions/{index}/options/{option_index}", response_model=QuizOut)
async def remove_option(quiz_id: str, index: int, option_index: int,
                        current_user: User = Depends(get_current_teacher)):
    editor = QuizEditor(owned_quiz(quiz_id, current_user))
    editor.remove_option(index, option_index)
    return quiz_out(editor.save())
