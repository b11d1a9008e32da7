"""Shared service instances handed to the routers through ``Depends``."""

from functools import lru_cache

from services.attendance import AttendanceRecorder
from services.quiz_engine import QuizSessionRegistry


# PUBLIC_INTERFACE
def get_recorder() -> AttendanceRecorder:
    """Return the process-wide attendance recorder."""
    return _recorder_singleton()


# PUBLIC_INTERFACE
def get_sessions() -> QuizSessionRegistry:
    """Return the registry of in-progress quiz sessions."""
    return _sessions_singleton()


@lru_cache(maxsize=1)
def _recorder_singleton() -> AttendanceRecorder:
    return AttendanceRecorder()


@lru_cache(maxsize=1)
def _sessions_singleton() -> QuizSessionRegistry:
    return QuizSessionRegistry(recorder=get_recorder())
