"""
Tests for interview feedback.

Tests:
- Rating and recommendation validation
- Submission closes the interview
- One feedback per interview
- Update, delete and lookups
"""

import pytest

from api.services import applications as application_service
from api.services import feedback as feedback_service
from api.services import interviews as interview_service
from api.services import jobs as job_service
from api.services import notifications as notification_service
from core.exceptions import (
    FeedbackAlreadyExists,
    FeedbackNotFound,
    Forbidden,
    InterviewNotFound,
    InvalidFeedback,
    InvalidField,
    InvalidTransition,
)
from database.models.interviews import Interview, InterviewStatus

RATINGS = {
    "overall_rating": 4,
    "technical_skills": 5,
    "communication_skills": 4,
    "problem_solving": 3,
    "cultural_fit": 4,
}


@pytest.fixture
def scheduled_interview(session, admin, candidate, interview_time):
    async def _scheduled():
        job = await job_service.create_job(
            session,
            admin,
            title="QA Engineer",
            role="Engineer",
            location="Remote",
            description="Testing",
        )
        return await interview_service.schedule_interview_for_candidate(
            session,
            admin,
            candidate.user_id,
            job["id"],
            interview_time,
            "02:30 PM",
            "Sam Lead",
            "sam@example.com",
        )

    return _scheduled


async def _submit(session, actor, interview_id, recommendation="hire", **overrides):
    ratings = dict(RATINGS, **overrides)
    return await feedback_service.submit_feedback(
        session,
        actor,
        interview_id,
        recommendation=recommendation,
        strengths="Clear thinker",
        weaknesses="Rusty on SQL",
        **ratings,
    )


class TestValidation:
    """Ratings and recommendation checks."""

    @pytest.mark.parametrize("value", [0, 6, -1, 4.5, "5", True, None])
    def test_bad_rating(self, value):
        with pytest.raises(InvalidFeedback) as exc_info:
            feedback_service.validate_ratings({"cultural_fit": value})

        assert exc_info.value.status_code == 422
        assert exc_info.value.code == "INVALID_FEEDBACK"

    def test_bounds_accepted(self):
        feedback_service.validate_ratings({"overall_rating": 1, "cultural_fit": 5})

    @pytest.mark.parametrize("value", ["hire", "no-hire", "maybe"])
    def test_recommendations(self, value):
        assert feedback_service.parse_recommendation(value).value == value

    @pytest.mark.parametrize("value", ["yes", "HIRE", "no_hire", ""])
    def test_bad_recommendation(self, value):
        with pytest.raises(InvalidFeedback):
            feedback_service.parse_recommendation(value)


class TestSubmit:
    """Submitting feedback."""

    @pytest.mark.asyncio
    async def test_submit_completes_interview(
        self, session, hr, candidate, scheduled_interview
    ):
        interview = await scheduled_interview()

        feedback = await _submit(session, hr, interview["id"])

        assert feedback["candidate_id"] == candidate.user_id
        assert feedback["job_id"] == interview["job_id"]
        assert feedback["interviewer_name"] == "Harriet Recruiter"
        assert feedback["candidate_name"] == "Jane Doe"
        assert feedback["technical_skills"] == 5
        assert feedback["recommendation"] == "hire"

        row = await session.get(Interview, interview["id"])
        assert row.status == InterviewStatus.COMPLETED
        application = await application_service.get_application(
            session, hr, interview["application_id"]
        )
        assert application["status"] == "interviewed"

    @pytest.mark.asyncio
    async def test_admins_notified(self, session, admin, hr, scheduled_interview):
        interview = await scheduled_interview()

        feedback = await _submit(session, hr, interview["id"], recommendation="maybe")

        inbox = await notification_service.get_notifications_for_user(
            session, admin.user_id
        )
        assert inbox[0]["type"] == "feedback_submitted"
        assert inbox[0]["message"] == "Feedback for Jane Doe: maybe (4/5)"
        assert inbox[0]["related"] == {"type": "feedback", "id": feedback["id"]}

    @pytest.mark.asyncio
    async def test_after_completion(self, session, hr, scheduled_interview):
        interview = await scheduled_interview()
        await interview_service.complete_interview(session, hr, interview["id"])

        feedback = await _submit(session, hr, interview["id"])

        assert feedback["interview_id"] == interview["id"]

    @pytest.mark.asyncio
    async def test_duplicate(self, session, hr, scheduled_interview):
        interview = await scheduled_interview()
        await _submit(session, hr, interview["id"])

        with pytest.raises(FeedbackAlreadyExists):
            await _submit(session, hr, interview["id"], recommendation="no-hire")

    @pytest.mark.asyncio
    async def test_cancelled_interview(self, session, hr, scheduled_interview):
        interview = await scheduled_interview()
        await interview_service.cancel_interview(session, hr, interview["id"])

        with pytest.raises(InvalidTransition):
            await _submit(session, hr, interview["id"])

    @pytest.mark.asyncio
    async def test_invalid_rating_leaves_interview_alone(
        self, session, hr, scheduled_interview
    ):
        interview = await scheduled_interview()

        with pytest.raises(InvalidFeedback):
            await _submit(session, hr, interview["id"], overall_rating=7)

        row = await session.get(Interview, interview["id"])
        assert row.status == InterviewStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_unknown_interview(self, session, hr):
        with pytest.raises(InterviewNotFound):
            await _submit(session, hr, 999)

    @pytest.mark.asyncio
    async def test_candidates_cannot_submit(
        self, session, candidate, scheduled_interview
    ):
        interview = await scheduled_interview()

        with pytest.raises(Forbidden):
            await _submit(session, candidate, interview["id"])


class TestManageFeedback:
    """Updating, deleting and reading feedback."""

    @pytest.mark.asyncio
    async def test_update(self, session, hr, scheduled_interview):
        interview = await scheduled_interview()
        feedback = await _submit(session, hr, interview["id"])

        updated = await feedback_service.update_feedback(
            session, hr, feedback["id"], overall_rating=2, recommendation="no-hire"
        )

        assert updated["overall_rating"] == 2
        assert updated["recommendation"] == "no-hire"
        assert updated["strengths"] == "Clear thinker"
        assert updated["updated_at"] is not None

    @pytest.mark.asyncio
    async def test_update_validates(self, session, hr, scheduled_interview):
        interview = await scheduled_interview()
        feedback = await _submit(session, hr, interview["id"])

        with pytest.raises(InvalidFeedback):
            await feedback_service.update_feedback(
                session, hr, feedback["id"], problem_solving=0
            )

    @pytest.mark.asyncio
    async def test_update_nulls(self, session, hr, scheduled_interview):
        interview = await scheduled_interview()
        feedback = await _submit(session, hr, interview["id"])

        updated = await feedback_service.update_feedback(
            session, hr, feedback["id"], strengths=None, additional_comments=None
        )
        assert updated["strengths"] == ""
        assert updated["additional_comments"] is None

        for field in ("overall_rating", "recommendation"):
            with pytest.raises(InvalidFeedback):
                await feedback_service.update_feedback(
                    session, hr, feedback["id"], **{field: None}
                )

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, session, hr, scheduled_interview):
        interview = await scheduled_interview()
        feedback = await _submit(session, hr, interview["id"])

        with pytest.raises(InvalidField):
            await feedback_service.update_feedback(
                session, hr, feedback["id"], interviewer_name="Someone else"
            )

    @pytest.mark.asyncio
    async def test_update_unknown(self, session, hr):
        with pytest.raises(FeedbackNotFound):
            await feedback_service.update_feedback(session, hr, 999, overall_rating=3)

    @pytest.mark.asyncio
    async def test_delete_keeps_interview_completed(
        self, session, hr, scheduled_interview
    ):
        interview = await scheduled_interview()
        feedback = await _submit(session, hr, interview["id"])

        assert await feedback_service.delete_feedback(session, hr, feedback["id"]) == feedback["id"]

        assert await feedback_service.get_feedback_by_id(session, hr, feedback["id"]) is None
        row = await session.get(Interview, interview["id"])
        assert row.status == InterviewStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_lookups(self, session, hr, candidate, scheduled_interview):
        interview = await scheduled_interview()
        feedback = await _submit(session, hr, interview["id"])

        by_interview = await feedback_service.get_feedback_by_interview(
            session, hr, interview["id"]
        )
        by_candidate = await feedback_service.get_feedback_by_candidate(
            session, hr, candidate.user_id
        )
        by_job = await feedback_service.get_feedback_by_job(
            session, hr, interview["job_id"]
        )
        everything = await feedback_service.get_all_feedback(session, hr)

        assert by_interview["id"] == feedback["id"]
        assert [f["id"] for f in by_candidate] == [feedback["id"]]
        assert [f["id"] for f in by_job] == [feedback["id"]]
        assert [f["id"] for f in everything] == [feedback["id"]]

    @pytest.mark.asyncio
    async def test_candidates_cannot_read(self, session, candidate):
        with pytest.raises(Forbidden):
            await feedback_service.get_all_feedback(session, candidate)
