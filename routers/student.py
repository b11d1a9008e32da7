from typing import List
from fastapi import APIRouter, Depends, Form, HTTPException, Response, status
from auth import authenticate, get_current_student, login_response, register_user
from dependencies import get_recorder, get_sessions
from errors import ConflictError, NotFoundError
from models import QuizResult, Quiz, User
from schemas import (
    AnswerIn, ClassroomOut, JoinClassroom, LessonOut, LessonView, PostOut, QuizSummaryOut,
    QuizTakingOut, ResultOut, StudentCreate, UserOut, classroom_out, lesson_out, post_out,
    quiz_out, result_out, user_out,
)
from services import classrooms
from services.attendance import AttendanceRecorder
from services.quiz_engine import (
    QuizSessionRegistry, QuizState, SubmissionOutcome, fetch_quiz_for_taking, find_result,
)

router = APIRouter()

def enrolled_classroom(classroom_id: str, student: User):
    classroom = classrooms.get_classroom(classroom_id)
    if not classrooms.is_enrolled(classroom_id, str(student.id)):
        raise HTTPException(status_code=403, detail="You are not enrolled in this class")
    return classroom

@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def student_signup(body: StudentCreate):
    user = register_user("student", body.name, body.email, body.password, school_id=body.school_id)
    return user_out(user)

@router.post("/login")
async def student_login(email: str = Form(...), password: str = Form(...)):
    user = authenticate("student", email, password)
    return login_response(user)

@router.get("/logout")
async def logout(response: Response):
    response.delete_cookie("access_token")
    return {"detail": "Logged out"}

@router.get("/me", response_model=UserOut)
async def student_profile(current_user: User = Depends(get_current_student)):
    return user_out(current_user)

# --- Classrooms ---

@router.get("/classrooms", response_model=List[ClassroomOut])
async def my_classrooms(current_user: User = Depends(get_current_student)):
    return [classroom_out(c) for c in classrooms.student_classrooms(str(current_user.id))]

@router.post("/classrooms/join", response_model=ClassroomOut, status_code=status.HTTP_201_CREATED)
async def join_classroom(body: JoinClassroom, current_user: User = Depends(get_current_student)):
    return classroom_out(classrooms.join_classroom(str(current_user.id), body.code))

@router.get("/classrooms/{classroom_id}/posts", response_model=List[PostOut])
async def classroom_posts(classroom_id: str, current_user: User = Depends(get_current_student)):
    enrolled_classroom(classroom_id, current_user)
    return [post_out(p) for p in classrooms.list_posts(classroom_id)]

@router.get("/classrooms/{classroom_id}/lessons", response_model=List[LessonOut])
async def classroom_lessons(classroom_id: str, current_user: User = Depends(get_current_student)):
    enrolled_classroom(classroom_id, current_user)
    return [lesson_out(l) for l in classrooms.list_lessons(classroom_id)]

@router.post("/lessons/{lesson_id}/view")
async def lesson_viewed(
    lesson_id: str,
    body: LessonView,
    current_user: User = Depends(get_current_student),
    recorder: AttendanceRecorder = Depends(get_recorder),
):
    lesson = classrooms.get_lesson(lesson_id)
    enrolled_classroom(lesson.classroom_id, current_user)
    recorded = recorder.record_lesson_view(str(current_user.id), lesson.classroom_id,
                                           str(lesson.id), body.duration_seconds)
    return {"recorded": recorded}

@router.get("/classrooms/{classroom_id}/quizzes", response_model=List[QuizSummaryOut])
async def classroom_quizzes(classroom_id: str, current_user: User = Depends(get_current_student)):
    enrolled_classroom(classroom_id, current_user)
    results = {
        r.quiz_id: r for r in QuizResult.objects(student_id=str(current_user.id), classroom_id=classroom_id)
    }
    summaries = []
    for quiz in Quiz.objects(classroom_id=classroom_id).order_by("-created_at"):
        result = results.get(str(quiz.id))
        summaries.append(QuizSummaryOut(
            id=str(quiz.id),
            title=quiz.title,
            description=quiz.description or "",
            time_limit=quiz.time_limit,
            question_count=len(quiz.questions),
            submitted=result is not None,
            score=result.score if result else None,
        ))
    return summaries

# --- Taking a quiz ---

def _taking_out(state, session=None) -> QuizTakingOut:
    if state.already_submitted:
        return QuizTakingOut(
            quiz=quiz_out(state.quiz),
            state=QuizState.SUBMITTED.value,
            result=result_out(SubmissionOutcome.from_result(state.prior_result)),
        )
    return QuizTakingOut(
        quiz=quiz_out(state.quiz, reveal_answers=False),
        state=session.state.value if session else QuizState.NOT_STARTED.value,
        time_limit_seconds=state.time_limit_seconds,
        remaining_seconds=session.remaining_seconds if session else state.time_limit_seconds,
    )

@router.get("/quizzes/{quiz_id}", response_model=QuizTakingOut)
async def quiz_page(
    quiz_id: str,
    current_user: User = Depends(get_current_student),
    sessions: QuizSessionRegistry = Depends(get_sessions),
):
    state = fetch_quiz_for_taking(quiz_id, str(current_user.id))
    enrolled_classroom(state.quiz.classroom_id, current_user)
    return _taking_out(state, sessions.get(str(state.quiz.id), str(current_user.id)))

@router.post("/quizzes/{quiz_id}/start", response_model=QuizTakingOut)
async def start_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_student),
    sessions: QuizSessionRegistry = Depends(get_sessions),
):
    student_id = str(current_user.id)
    state = fetch_quiz_for_taking(quiz_id, student_id)
    enrolled_classroom(state.quiz.classroom_id, current_user)
    if state.already_submitted:
        raise ConflictError("You have already taken this quiz.")
    session = sessions.open(state.quiz, student_id, state.quiz.classroom_id)
    session.start()
    return _taking_out(state, session)

@router.put("/quizzes/{quiz_id}/answers")
async def record_answer(
    quiz_id: str,
    body: AnswerIn,
    current_user: User = Depends(get_current_student),
    sessions: QuizSessionRegistry = Depends(get_sessions),
):
    session = sessions.get(quiz_id, str(current_user.id))
    if session is None:
        raise NotFoundError("No quiz in progress")
    session.record_answer(body.question_index, body.option_index)
    return {"answers": session.answers, "remaining_seconds": session.remaining_seconds}

@router.post("/quizzes/{quiz_id}/submit", response_model=ResultOut)
async def submit_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_student),
    sessions: QuizSessionRegistry = Depends(get_sessions),
):
    student_id = str(current_user.id)
    session = sessions.get(quiz_id, student_id)
    if session is None:
        # The countdown may already have submitted on the student's behalf.
        result = find_result(quiz_id, student_id)
        if result is None:
            raise NotFoundError("No quiz in progress")
        return result_out(SubmissionOutcome.from_result(result))
    return result_out(session.submit())

@router.delete("/quizzes/{quiz_id}/session", status_code=status.HTTP_204_NO_CONTENT)
async def leave_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_student),
    sessions: QuizSessionRegistry = Depends(get_sessions),
):
    sessions.close(quiz_id, str(current_user.id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
