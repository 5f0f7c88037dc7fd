"""
Domain exceptions raised by the service layer.

Routers translate these into HTTP status codes; see routers._raise_http.
"""
from __future__ import annotations


class QuizServiceError(Exception):
    """Base class for errors that carry a user-facing message."""


class NotFoundError(QuizServiceError):
    """The requested quiz, result or user does not exist."""


class ForbiddenError(QuizServiceError):
    """The caller may not read or modify the record."""


class QuizValidationError(QuizServiceError):
    """Input is structurally valid JSON but violates a quiz rule."""


class RegistrationError(QuizServiceError):
    """Live quiz registration was refused (closed, full, duplicate)."""


class InvalidTransitionError(QuizServiceError):
    """A live quiz status change is not allowed from the current status."""


class ConcurrentUpdateError(QuizServiceError):
    """A versioned write kept losing to concurrent writers."""


class AIConfigurationError(QuizServiceError):
    """The AI text-generation backend is not configured."""
