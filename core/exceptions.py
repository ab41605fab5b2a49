"""
Domain exceptions for the recruitment workflow.

Every precondition failure has its own type and error code so the calling
layer can show a specific message ("email already registered" vs. "wrong
password"). The HTTP layer maps ``status_code`` and ``code`` straight into
the error envelope.
"""

from typing import Any, Optional


class RecruitmentError(Exception):
    """Base class for all typed failures raised by the service layer."""

    code: str = "RECRUITMENT_ERROR"
    status_code: int = 400
    default_message: str = "The operation could not be completed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


# ==================== Identity ==================== #
class DuplicateEmail(RecruitmentError):
    code = "DUPLICATE_EMAIL"
    status_code = 409
    default_message = "User with this email already exists"


class AdminAlreadyExists(RecruitmentError):
    code = "ADMIN_ALREADY_EXISTS"
    status_code = 409
    default_message = "An admin account already exists. Only one admin is allowed."


class InvalidCredentials(RecruitmentError):
    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid email or password"


class Forbidden(RecruitmentError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You don't have permission to perform this action"


# ==================== Not found ==================== #
class NotFound(RecruitmentError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class ProfileNotFound(NotFound):
    code = "PROFILE_NOT_FOUND"
    default_message = "Candidate profile not found"


class CandidateNotFound(NotFound):
    code = "CANDIDATE_NOT_FOUND"
    default_message = "Candidate not found"


class JobNotFound(NotFound):
    code = "JOB_NOT_FOUND"
    default_message = "Job not found"


class UploadNotFound(NotFound):
    code = "UPLOAD_NOT_FOUND"
    default_message = "Upload not found"


class ApplicationNotFound(NotFound):
    code = "APPLICATION_NOT_FOUND"
    default_message = "Application not found"


class InterviewNotFound(NotFound):
    code = "INTERVIEW_NOT_FOUND"
    default_message = "Interview not found"


class ProjectNotFound(NotFound):
    code = "PROJECT_NOT_FOUND"
    default_message = "Project not found"


class AchievementNotFound(NotFound):
    code = "ACHIEVEMENT_NOT_FOUND"
    default_message = "Achievement not found"


class FeedbackNotFound(NotFound):
    code = "FEEDBACK_NOT_FOUND"
    default_message = "Feedback not found"


class QueryNotFound(NotFound):
    code = "QUERY_NOT_FOUND"
    default_message = "Query not found"


class ResponseNotFound(NotFound):
    code = "RESPONSE_NOT_FOUND"
    default_message = "Query response not found"


class NotificationNotFound(NotFound):
    code = "NOTIFICATION_NOT_FOUND"
    default_message = "Notification not found"


# ==================== Conflicts / validation ==================== #
class ProfileAlreadyExists(RecruitmentError):
    code = "PROFILE_ALREADY_EXISTS"
    status_code = 409
    default_message = "Candidate profile already exists"


class FeedbackAlreadyExists(RecruitmentError):
    code = "FEEDBACK_ALREADY_EXISTS"
    status_code = 409
    default_message = "Feedback has already been submitted for this interview"


class InvalidTransition(RecruitmentError):
    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "Status transition is not allowed"


class InvalidFeedback(RecruitmentError):
    code = "INVALID_FEEDBACK"
    status_code = 422
    default_message = "Feedback is invalid"


class InvalidField(RecruitmentError):
    code = "INVALID_FIELD"
    status_code = 422
    default_message = "Unknown field or a required field set to null"


class ApplicationConflict(RecruitmentError):
    """Another request opened the application or interview first."""

    code = "APPLICATION_CONFLICT"
    status_code = 409
    default_message = (
        "The candidate's application for this job was changed by another request"
    )


class OperationFailed(RecruitmentError):
    """The store rejected a write; the whole unit of work was rolled back."""

    code = "OPERATION_FAILED"
    status_code = 500
    default_message = "The operation failed and no changes were saved"
