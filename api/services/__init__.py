"""
API Services Layer.

Business operations of the recruitment workflow. Every function takes the
request's AsyncSession and, where an actor matters, the acting Identity.
"""

from api.services.users import (
    signup,
    login,
    get_current_user,
    get_users_by_role,
)

from api.services.candidates import (
    create_candidate_profile,
    update_candidate_profile,
    get_candidate_profile,
    get_all_candidates,
    calculate_profile_completion,
    add_candidate_project,
    get_candidate_projects,
    update_candidate_project,
    delete_candidate_project,
    add_candidate_achievement,
    get_candidate_achievements,
    delete_candidate_achievement,
    search_candidates,
)

from api.services.jobs import (
    create_job,
    get_job_by_id,
    get_all_jobs,
    close_job,
)

from api.services.matching import (
    match_candidates_for_job,
)

from api.services.applications import (
    get_application,
    list_applications,
    update_application_status,
)

from api.services.interviews import (
    schedule_interview_for_candidate,
    confirm_interview_by_hr,
    complete_interview,
    cancel_interview,
    get_interview_by_id,
    get_pending_interviews_for_hr,
    get_interviews_for_candidate,
)

from api.services.resumes import (
    upload_candidate_resume,
    intake_candidate,
    get_all_resume_uploads,
    shortlist_candidate_for_interview,
    review_resume_upload,
)

from api.services.feedback import (
    submit_feedback,
    get_feedback_by_id,
    get_feedback_by_interview,
    get_feedback_by_candidate,
    get_feedback_by_job,
    get_all_feedback,
    update_feedback,
    delete_feedback,
)

from api.services.notifications import (
    get_notifications_for_user,
    get_unread_count,
    mark_notification_read,
    mark_all_notifications_read,
)

from api.services.queries import (
    create_query,
    respond_to_query,
    update_query_status,
    get_queries_for_user,
    mark_response_as_read,
)

__all__ = [
    # Users
    "signup",
    "login",
    "get_current_user",
    "get_users_by_role",
    # Candidates
    "create_candidate_profile",
    "update_candidate_profile",
    "get_candidate_profile",
    "get_all_candidates",
    "calculate_profile_completion",
    "add_candidate_project",
    "get_candidate_projects",
    "update_candidate_project",
    "delete_candidate_project",
    "add_candidate_achievement",
    "get_candidate_achievements",
    "delete_candidate_achievement",
    "search_candidates",
    # Jobs
    "create_job",
    "get_job_by_id",
    "get_all_jobs",
    "close_job",
    # Matching
    "match_candidates_for_job",
    # Applications
    "get_application",
    "list_applications",
    "update_application_status",
    # Interviews
    "schedule_interview_for_candidate",
    "confirm_interview_by_hr",
    "complete_interview",
    "cancel_interview",
    "get_interview_by_id",
    "get_pending_interviews_for_hr",
    "get_interviews_for_candidate",
    # Resume intake
    "upload_candidate_resume",
    "intake_candidate",
    "get_all_resume_uploads",
    "shortlist_candidate_for_interview",
    "review_resume_upload",
    # Feedback
    "submit_feedback",
    "get_feedback_by_id",
    "get_feedback_by_interview",
    "get_feedback_by_candidate",
    "get_feedback_by_job",
    "get_all_feedback",
    "update_feedback",
    "delete_feedback",
    # Notifications
    "get_notifications_for_user",
    "get_unread_count",
    "mark_notification_read",
    "mark_all_notifications_read",
    # Queries
    "create_query",
    "respond_to_query",
    "update_query_status",
    "get_queries_for_user",
    "mark_response_as_read",
]
