from datetime import datetime, timedelta

from mongoengine import disconnect

from models import LESSON_VIEW, QUIZ_ATTEMPT, Attendance
from services.attendance import AttendanceRecorder, attendance_summary


def test_same_day_lesson_views_accumulate_into_one_record(db, clock):
    recorder = AttendanceRecorder(clock=clock)

    assert recorder.record_lesson_view("s1", "c1", "lesson-1", 40)
    clock.now += timedelta(hours=3)
    assert recorder.record_lesson_view("s1", "c1", "lesson-1", 25)

    records = list(Attendance.objects(student_id="s1", activity_type=LESSON_VIEW))
    assert len(records) == 1
    assert records[0].duration == 65
    assert records[0].day == "2024-03-14"
    assert records[0].date == datetime(2024, 3, 14, 9, 30)


def test_lesson_views_on_different_days_get_their_own_records(db, clock):
    recorder = AttendanceRecorder(clock=clock)

    recorder.record_lesson_view("s1", "c1", "lesson-1", 40)
    clock.now += timedelta(days=1)
    recorder.record_lesson_view("s1", "c1", "lesson-1", 10)

    durations = {r.day: r.duration for r in Attendance.objects(activity_id="lesson-1")}
    assert durations == {"2024-03-14": 40, "2024-03-15": 10}


def test_day_boundary_is_local_midnight(db, clock):
    recorder = AttendanceRecorder(clock=clock)
    clock.now = datetime(2024, 3, 14, 23, 59, 50)
    recorder.record_lesson_view("s1", "c1", "lesson-1", 5)
    clock.now = datetime(2024, 3, 15, 0, 0, 5)
    recorder.record_lesson_view("s1", "c1", "lesson-1", 5)

    assert Attendance.objects(activity_id="lesson-1").count() == 2


def test_lesson_views_are_kept_apart_per_lesson_and_student(db, clock):
    recorder = AttendanceRecorder(clock=clock)
    recorder.record_lesson_view("s1", "c1", "lesson-1", 10)
    recorder.record_lesson_view("s1", "c1", "lesson-2", 10)
    recorder.record_lesson_view("s2", "c1", "lesson-1", 10)

    assert Attendance.objects.count() == 3


def test_quiz_attempt_recorded_once_per_day(db, clock):
    recorder = AttendanceRecorder(clock=clock)

    assert recorder.record_quiz_attempt("s1", "c1", "quiz-1")
    clock.now += timedelta(minutes=20)
    assert recorder.record_quiz_attempt("s1", "c1", "quiz-1")

    records = list(Attendance.objects(activity_type=QUIZ_ATTEMPT))
    assert len(records) == 1
    assert records[0].duration is None
    assert records[0].date == datetime(2024, 3, 14, 9, 30)


def test_store_failure_is_reported_as_false(clock):
    disconnect()
    recorder = AttendanceRecorder(clock=clock)

    assert recorder.record_lesson_view("s1", "c1", "lesson-1", 10) is False
    assert recorder.record_quiz_attempt("s1", "c1", "quiz-1") is False


def test_attendance_summary_totals_per_student(db, clock):
    recorder = AttendanceRecorder(clock=clock)
    recorder.record_lesson_view("s1", "c1", "lesson-1", 30)
    recorder.record_lesson_view("s1", "c1", "lesson-2", 15)
    recorder.record_quiz_attempt("s1", "c1", "quiz-1")
    clock.now += timedelta(days=1)
    recorder.record_lesson_view("s1", "c1", "lesson-1", 5)
    recorder.record_quiz_attempt("s2", "c1", "quiz-1")
    recorder.record_lesson_view("s3", "other", "lesson-9", 100)

    summary = attendance_summary("c1")

    assert summary == [
        {"student_id": "s1", "lesson_views": 3, "lesson_seconds": 50, "quiz_attempts": 1, "days_active": 2},
        {"student_id": "s2", "lesson_views": 0, "lesson_seconds": 0, "quiz_attempts": 1, "days_active": 1},
    ]
