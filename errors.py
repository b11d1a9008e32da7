"""Domain errors raised by the service layer.

Routers let these propagate; ``main.py`` maps each class to an HTTP status.
"""

from contextlib import contextmanager

from mongoengine.connection import ConnectionFailure
from mongoengine.errors import NotUniqueError, OperationError
from pymongo.errors import PyMongoError


class ClassroomError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ClassroomError):
    status_code = 404


class ValidationFailure(ClassroomError):
    status_code = 422


class ConflictError(ClassroomError):
    status_code = 409


class StoreFailure(ClassroomError):
    """The document store could not complete a read or write."""

    status_code = 503


STORE_ERRORS = (PyMongoError, OperationError, ConnectionFailure)


@contextmanager
def store_errors(action: str):
    """Re-raise document store errors as ``StoreFailure``."""
    try:
        yield
    except NotUniqueError:
        raise
    except STORE_ERRORS as e:
        raise StoreFailure(f"Failed to {action}") from e
