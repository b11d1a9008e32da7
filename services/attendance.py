"""
Engagement tracking for lesson views and quiz attempts.

Each record is keyed by (student, classroom, activity type, activity, day),
so a repeated activity on the same local calendar day lands on the same
document. Lesson views accumulate their duration; quiz attempts are written
once per day. Tracking is best-effort: store errors are logged and reported
as ``False`` so they never block the student's primary action.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List

from mongoengine.errors import ValidationError

from errors import STORE_ERRORS, store_errors
from models import LESSON_VIEW, QUIZ_ATTEMPT, Attendance

logger = logging.getLogger(__name__)


class AttendanceRecorder:
    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def record_lesson_view(self, student_id: str, classroom_id: str, lesson_id: str,
                           duration_seconds: int) -> bool:
        """Add ``duration_seconds`` to today's lesson-view record, creating it if needed."""
        try:
            now = self.clock()
            key, fields = self._insert_fields(student_id, classroom_id, LESSON_VIEW, lesson_id, now)
            Attendance.objects(id=key).update_one(
                upsert=True,
                inc__duration=int(duration_seconds),
                **fields,
            )
            return True
        except STORE_ERRORS + (ValidationError,):
            logger.exception("Error recording lesson view for student %s", student_id)
            return False

    def record_quiz_attempt(self, student_id: str, classroom_id: str, quiz_id: str) -> bool:
        """Create today's quiz-attempt record; a second attempt the same day changes nothing."""
        try:
            now = self.clock()
            key, fields = self._insert_fields(student_id, classroom_id, QUIZ_ATTEMPT, quiz_id, now)
            Attendance.objects(id=key).update_one(upsert=True, **fields)
            return True
        except STORE_ERRORS + (ValidationError,):
            logger.exception("Error recording quiz attempt for student %s", student_id)
            return False

    @staticmethod
    def _insert_fields(student_id, classroom_id, activity_type, activity_id, now):
        day = now.date().isoformat()
        key = Attendance.derive_id(student_id, classroom_id, activity_type, activity_id, day)
        fields = {
            "set_on_insert__student_id": student_id,
            "set_on_insert__classroom_id": classroom_id,
            "set_on_insert__activity_type": activity_type,
            "set_on_insert__activity_id": activity_id,
            "set_on_insert__day": day,
            "set_on_insert__date": now,
        }
        return key, fields


def attendance_summary(classroom_id: str) -> List[Dict]:
    """Per-student engagement totals for a classroom, most active first."""
    totals = defaultdict(lambda: {"lesson_views": 0, "lesson_seconds": 0,
                                  "quiz_attempts": 0, "days": set()})
    with store_errors("load attendance"):
        records = list(Attendance.objects(classroom_id=classroom_id))

    for record in records:
        entry = totals[record.student_id]
        entry["days"].add(record.day)
        if record.activity_type == LESSON_VIEW:
            entry["lesson_views"] += 1
            entry["lesson_seconds"] += record.duration or 0
        else:
            entry["quiz_attempts"] += 1

    summary = [
        {
            "student_id": student_id,
            "lesson_views": entry["lesson_views"],
            "lesson_seconds": entry["lesson_seconds"],
            "quiz_attempts": entry["quiz_attempts"],
            "days_active": len(entry["days"]),
        }
        for student_id, entry in totals.items()
    ]
    summary.sort(key=lambda s: (-s["days_active"], -s["lesson_seconds"], s["student_id"]))
    return summary
