"""
Tests for candidate profiles, child records, completion and search.
"""

import asyncio

import pytest

from api.services import candidates as candidate_service
from core.exceptions import (
    CandidateNotFound,
    Forbidden,
    InvalidField,
    ProfileAlreadyExists,
    ProfileNotFound,
    ProjectNotFound,
    UserNotFound,
)
from database.models.users import UserRole


class TestProfiles:
    """Profile creation and updates."""

    @pytest.mark.asyncio
    async def test_create_with_defaults(self, session, candidate):
        profile = await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id, skills=["Python"]
        )

        assert profile["user_id"] == candidate.user_id
        assert profile["skills"] == ["Python"]
        assert profile["work_preference"] == "hybrid"
        assert profile["availability"] == "negotiable"
        assert profile["projects_count"] == 0
        assert profile["achievements_count"] == 0
        assert profile["is_actively_looking"] is True

    @pytest.mark.asyncio
    async def test_create_twice(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id
        )

        with pytest.raises(ProfileAlreadyExists):
            await candidate_service.create_candidate_profile(
                session, candidate, candidate.user_id
            )

    @pytest.mark.asyncio
    async def test_create_patches_contact_details(self, session, hr, candidate):
        profile = await candidate_service.create_candidate_profile(
            session, hr, candidate.user_id, first_name="Janet", phone="555-0100"
        )

        assert profile["first_name"] == "Janet"
        assert profile["phone"] == "555-0100"

    @pytest.mark.asyncio
    async def test_create_for_unknown_user(self, session, hr):
        with pytest.raises(UserNotFound):
            await candidate_service.create_candidate_profile(session, hr, 999)

    @pytest.mark.asyncio
    async def test_create_for_non_candidate(self, session, admin, hr):
        with pytest.raises(CandidateNotFound):
            await candidate_service.create_candidate_profile(session, admin, hr.user_id)

    @pytest.mark.asyncio
    async def test_candidate_cannot_create_for_someone_else(
        self, session, candidate, make_user
    ):
        other = await make_user(UserRole.CANDIDATE)

        with pytest.raises(Forbidden):
            await candidate_service.create_candidate_profile(
                session, candidate, other.user_id
            )

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, session, candidate):
        assert (
            await candidate_service.get_candidate_profile(
                session, candidate, candidate.user_id
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_partial_update(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id, location="Berlin", experience=2
        )

        profile = await candidate_service.update_candidate_profile(
            session, candidate, candidate.user_id, experience=5, work_preference="remote"
        )

        assert profile["experience"] == 5
        assert profile["work_preference"] == "remote"
        assert profile["location"] == "Berlin"

    @pytest.mark.asyncio
    async def test_null_clears_optional_fields(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session,
            candidate,
            candidate.user_id,
            linkedin_url="https://linkedin.com/in/jane",
            certifications=["CKA"],
            expected_salary=90000,
        )

        profile = await candidate_service.update_candidate_profile(
            session,
            candidate,
            candidate.user_id,
            linkedin_url=None,
            certifications=None,
            expected_salary=None,
        )

        assert profile["linkedin_url"] == ""
        assert profile["certifications"] == []
        assert profile["expected_salary"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field", ["experience", "availability", "is_actively_looking"]
    )
    async def test_null_rejected_for_required_fields(self, session, candidate, field):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id, experience=2
        )

        with pytest.raises(InvalidField):
            await candidate_service.update_candidate_profile(
                session, candidate, candidate.user_id, **{field: None}
            )

        row = await candidate_service.get_profile_row(session, candidate.user_id)
        assert row.experience == 2

    @pytest.mark.asyncio
    async def test_unknown_field(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id
        )

        with pytest.raises(InvalidField) as exc_info:
            await candidate_service.update_candidate_profile(
                session, candidate, candidate.user_id, nickname="JD"
            )

        assert exc_info.value.status_code == 422
        assert exc_info.value.context == {"fields": ["nickname"]}

    @pytest.mark.asyncio
    async def test_update_missing_profile(self, session, candidate):
        with pytest.raises(ProfileNotFound):
            await candidate_service.update_candidate_profile(
                session, candidate, candidate.user_id, experience=1
            )

    @pytest.mark.asyncio
    async def test_list_requires_staff(self, session, candidate):
        with pytest.raises(Forbidden):
            await candidate_service.get_all_candidates(session, candidate)


class TestCompletion:
    """Weighted completion score."""

    @pytest.mark.asyncio
    async def test_no_profile_scores_zero(self, session, candidate):
        assert await candidate_service.calculate_profile_completion(
            session, candidate.user_id
        ) == 0

    @pytest.mark.asyncio
    async def test_partial_profile(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session,
            candidate,
            candidate.user_id,
            skills=["Go"],
            experience=3,
            summary="Backend engineer",
        )

        score = await candidate_service.calculate_profile_completion(
            session, candidate.user_id
        )
        profile = await candidate_service.get_candidate_profile(
            session, candidate, candidate.user_id
        )

        assert score == 15 + 10 + 15
        assert profile["profile_completion_percentage"] == 40
        assert profile["is_profile_complete"] is False

    @pytest.mark.asyncio
    async def test_complete_profile(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session,
            candidate,
            candidate.user_id,
            skills=["Go"],
            experience=3,
            education="BSc",
            location="Remote",
            summary="Backend engineer",
            linkedin_url="https://linkedin.com/in/jane",
            github_url="https://github.com/jane",
            portfolio_url="https://jane.dev",
            current_job_title="Engineer",
        )
        profile_row = await candidate_service.get_profile_row(session, candidate.user_id)
        profile_row.resume_id = "1"
        await session.commit()

        score = await candidate_service.calculate_profile_completion(
            session, candidate.user_id
        )

        assert score == 100
        assert profile_row.is_profile_complete is True

    @pytest.mark.asyncio
    async def test_everything_but_links_and_title(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session,
            candidate,
            candidate.user_id,
            skills=["Go"],
            experience=3,
            education="BSc",
            location="Remote",
            summary="Backend engineer",
        )
        profile_row = await candidate_service.get_profile_row(session, candidate.user_id)
        profile_row.resume_id = "1"
        await session.commit()

        score = await candidate_service.calculate_profile_completion(
            session, candidate.user_id
        )

        assert score == 80
        assert profile_row.profile_completion_percentage == 80
        assert profile_row.is_profile_complete is False


class TestProjectsAndAchievements:
    """Child records keep the profile counters in step."""

    @pytest.mark.asyncio
    async def test_project_counter(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id
        )

        first = await candidate_service.add_candidate_project(
            session, candidate, candidate.user_id, "Compiler", technologies=["Rust"]
        )
        await candidate_service.add_candidate_project(
            session, candidate, candidate.user_id, "Website"
        )
        row = await candidate_service.get_profile_row(session, candidate.user_id)
        assert row.projects_count == 2

        await candidate_service.delete_candidate_project(session, candidate, first["id"])
        await session.refresh(row)
        assert row.projects_count == 1

        projects = await candidate_service.get_candidate_projects(
            session, candidate.user_id
        )
        assert [p["title"] for p in projects] == ["Website"]

    @pytest.mark.asyncio
    async def test_project_needs_profile(self, session, candidate):
        with pytest.raises(ProfileNotFound):
            await candidate_service.add_candidate_project(
                session, candidate, candidate.user_id, "Orphan"
            )

    @pytest.mark.asyncio
    async def test_update_project(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id
        )
        project = await candidate_service.add_candidate_project(
            session, candidate, candidate.user_id, "Compiler"
        )

        updated = await candidate_service.update_candidate_project(
            session, candidate, project["id"], is_ongoing=True
        )

        assert updated["is_ongoing"] is True
        assert updated["title"] == "Compiler"

    @pytest.mark.asyncio
    async def test_update_project_nulls(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id
        )
        project = await candidate_service.add_candidate_project(
            session,
            candidate,
            candidate.user_id,
            "Compiler",
            role="Lead",
            technologies=["Rust"],
        )

        updated = await candidate_service.update_candidate_project(
            session, candidate, project["id"], role=None, technologies=None
        )
        assert updated["role"] is None
        assert updated["technologies"] == []

        with pytest.raises(InvalidField):
            await candidate_service.update_candidate_project(
                session, candidate, project["id"], title=None
            )
        with pytest.raises(InvalidField):
            await candidate_service.update_candidate_project(
                session, candidate, project["id"], stars=5
            )

    @pytest.mark.asyncio
    async def test_delete_unknown_project(self, session, candidate):
        with pytest.raises(ProjectNotFound):
            await candidate_service.delete_candidate_project(session, candidate, 404)

    @pytest.mark.asyncio
    async def test_counter_never_negative(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id
        )
        project = await candidate_service.add_candidate_project(
            session, candidate, candidate.user_id, "Compiler"
        )
        row = await candidate_service.get_profile_row(session, candidate.user_id)
        row.projects_count = 0
        await session.commit()

        await candidate_service.delete_candidate_project(session, candidate, project["id"])
        await session.refresh(row)

        assert row.projects_count == 0

    @pytest.mark.asyncio
    async def test_achievement_counter(self, session, candidate):
        await candidate_service.create_candidate_profile(
            session, candidate, candidate.user_id
        )

        achievement = await candidate_service.add_candidate_achievement(
            session,
            candidate,
            candidate.user_id,
            "AWS Certified",
            achievement_type="certification",
            issued_by="AWS",
        )
        row = await candidate_service.get_profile_row(session, candidate.user_id)
        assert row.achievements_count == 1
        assert achievement["issued_by"] == "AWS"

        await candidate_service.delete_candidate_achievement(
            session, candidate, achievement["id"]
        )
        await session.refresh(row)
        assert row.achievements_count == 0



class TestConcurrentCounters:
    """Counters stay equal to the row count when writers race."""

    @pytest.mark.asyncio
    async def test_concurrent_project_adds(self, file_session_factory, file_users):
        owner = file_users[UserRole.CANDIDATE]
        async with file_session_factory() as session:
            await candidate_service.create_candidate_profile(
                session, owner, owner.user_id
            )

        async def add(n):
            async with file_session_factory() as session:
                return await candidate_service.add_candidate_project(
                    session, owner, owner.user_id, f"Project {n}"
                )

        await asyncio.gather(*(add(n) for n in range(8)))

        async with file_session_factory() as session:
            projects = await candidate_service.get_candidate_projects(
                session, owner.user_id
            )
            row = await candidate_service.get_profile_row(session, owner.user_id)
        assert len(projects) == 8
        assert row.projects_count == 8

    @pytest.mark.asyncio
    async def test_concurrent_achievement_deletes(
        self, file_session_factory, file_users
    ):
        owner = file_users[UserRole.CANDIDATE]
        async with file_session_factory() as session:
            await candidate_service.create_candidate_profile(
                session, owner, owner.user_id
            )
            added = [
                await candidate_service.add_candidate_achievement(
                    session, owner, owner.user_id, f"Award {n}"
                )
                for n in range(6)
            ]

        async def delete(achievement_id):
            async with file_session_factory() as session:
                return await candidate_service.delete_candidate_achievement(
                    session, owner, achievement_id
                )

        await asyncio.gather(*(delete(a["id"]) for a in added[:4]))

        async with file_session_factory() as session:
            remaining = await candidate_service.get_candidate_achievements(
                session, owner.user_id
            )
            row = await candidate_service.get_profile_row(session, owner.user_id)
        assert len(remaining) == 2
        assert row.achievements_count == 2


class TestSearch:
    """Filtered candidate search."""

    @pytest.fixture
    def profiles(self, session, hr, make_user):
        async def _profiles():
            rows = [
                (["Python", "Django"], "Berlin, DE", 2, "remote"),
                (["JavaScript", "React"], "Munich", 6, "onsite"),
                (["python3"], "berlin", 10, "hybrid"),
            ]
            ids = []
            for skills, location, experience, preference in rows:
                user = await make_user(UserRole.CANDIDATE)
                await candidate_service.create_candidate_profile(
                    session,
                    hr,
                    user.user_id,
                    skills=skills,
                    location=location,
                    experience=experience,
                    work_preference=preference,
                )
                ids.append(user.user_id)
            return ids

        return _profiles

    @pytest.mark.asyncio
    async def test_skill_substring_either_direction(self, session, hr, profiles):
        ids = await profiles()

        result = await candidate_service.search_candidates(
            session, hr, skills=["PYTHON"]
        )

        assert [p["user_id"] for p in result] == [ids[0], ids[2]]

    @pytest.mark.asyncio
    async def test_location_and_experience(self, session, hr, profiles):
        ids = await profiles()

        result = await candidate_service.search_candidates(
            session, hr, location="berlin", min_experience=5
        )

        assert [p["user_id"] for p in result] == [ids[2]]

    @pytest.mark.asyncio
    async def test_work_preference(self, session, hr, profiles):
        ids = await profiles()

        result = await candidate_service.search_candidates(
            session, hr, work_preference="onsite", max_experience=6
        )

        assert [p["user_id"] for p in result] == [ids[1]]

    @pytest.mark.asyncio
    async def test_no_filters_returns_everyone(self, session, hr, profiles):
        ids = await profiles()

        result = await candidate_service.search_candidates(session, hr)

        assert [p["user_id"] for p in result] == ids

    def test_skills_overlap(self):
        assert candidate_service.skills_overlap("Python", "python3")
        assert candidate_service.skills_overlap("ReactJS", "react")
        assert not candidate_service.skills_overlap("Go", "Rust")
