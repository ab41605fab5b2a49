"""
Query (messaging thread) service functions.

A query is a directed support ticket from one user to another with
threaded responses. Status is a free overwrite among open / in_progress /
resolved, except that any response puts the thread back to in_progress.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.notifications import notify
from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.exceptions import (
    Forbidden,
    QueryNotFound,
    ResponseNotFound,
    UserNotFound,
)
from core.middleware.authorization import (
    Identity,
    Permission,
    require_participant,
    require_permission,
)
from core.utils.datetime import ensure_utc
from core.utils.formatting import display_name
from database.models.communications import (
    NotificationType,
    Query,
    QueryCategory,
    QueryPriority,
    QueryResponse,
    QueryStatus,
)
from database.models.users import User

logger = logging.getLogger(__name__)


def _serialize_response(response: QueryResponse) -> Dict[str, Any]:
    return {
        "id": response.id,
        "query_id": response.query_id,
        "responder_id": response.responder_id,
        "message": response.message,
        "is_read": response.is_read,
        "created_at": ensure_utc(response.created_at).isoformat(),
    }


def _serialize_query(query: Query) -> Dict[str, Any]:
    return {
        "id": query.id,
        "from_user_id": query.from_user_id,
        "to_user_id": query.to_user_id,
        "job_id": query.job_id,
        "candidate_id": query.candidate_id,
        "interview_id": query.interview_id,
        "subject": query.subject,
        "message": query.message,
        "priority": query.priority.value,
        "category": query.category.value,
        "status": query.status.value,
        "created_at": ensure_utc(query.created_at).isoformat(),
        "updated_at": ensure_utc(query.updated_at).isoformat(),
    }


async def _require_query(session: AsyncSession, query_id: int) -> Query:
    query = await session.get(Query, query_id)
    if query is None:
        raise QueryNotFound(query_id=query_id)
    return query


async def create_query(
    session: AsyncSession,
    actor: Identity,
    to_user_id: int,
    subject: str,
    message: str,
    priority: QueryPriority = QueryPriority.MEDIUM,
    category: QueryCategory = QueryCategory.GENERAL,
    job_id: Optional[int] = None,
    candidate_id: Optional[int] = None,
    interview_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Open a query from the actor to another user and notify the recipient.

    Raises:
        UserNotFound: The recipient does not exist
    """
    require_permission(actor, Permission.QUERY_CREATE)
    priority = QueryPriority(priority)
    category = QueryCategory(category)

    async with unit_of_work(session):
        if await session.get(User, to_user_id) is None:
            raise UserNotFound(user_id=to_user_id)

        query = Query(
            from_user_id=actor.user_id,
            to_user_id=to_user_id,
            subject=subject,
            message=message,
            priority=priority,
            category=category,
            status=QueryStatus.OPEN,
            job_id=job_id,
            candidate_id=candidate_id,
            interview_id=interview_id,
        )
        session.add(query)
        await session.flush()

        notify(
            session,
            to_user_id,
            NotificationType.QUERY_RECEIVED,
            title="New Query Received",
            message=f"You have a new {priority.value} priority query: {subject}",
            related_id=query.id,
        )

    log_audit_event(
        AuditAction.CREATE,
        ResourceType.QUERY,
        query.id,
        actor.user_id,
        details={"to_user_id": to_user_id, "category": category.value},
    )
    return _serialize_query(query)


async def respond_to_query(
    session: AsyncSession,
    actor: Identity,
    query_id: int,
    message: str,
) -> Dict[str, Any]:
    """
    Add a response; the query moves to in_progress, even when resolved.
    The other participant is notified.

    Raises:
        QueryNotFound: Unknown query id
        Forbidden: The actor is neither sender nor recipient
    """
    async with unit_of_work(session):
        query = await _require_query(session, query_id)
        require_participant(actor, query.from_user_id, query.to_user_id)

        response = QueryResponse(
            query_id=query.id,
            responder_id=actor.user_id,
            message=message,
            is_read=False,
        )
        session.add(response)
        query.status = QueryStatus.IN_PROGRESS
        await session.flush()

        if actor.user_id == query.from_user_id:
            other_party = query.to_user_id
            text = f'New response on query "{query.subject}"'
        else:
            other_party = query.from_user_id
            text = f'Your query "{query.subject}" has been responded to'
        notify(
            session,
            other_party,
            NotificationType.QUERY_RESPONDED,
            title="Query Response Received",
            message=text,
            related_id=query.id,
        )

    log_audit_event(AuditAction.RESPOND, ResourceType.QUERY, query.id, actor.user_id)
    return _serialize_response(response)


async def update_query_status(
    session: AsyncSession,
    actor: Identity,
    query_id: int,
    status: QueryStatus,
) -> Dict[str, Any]:
    """Overwrite the status; any status may follow any other."""
    status = QueryStatus(status)

    async with unit_of_work(session):
        query = await _require_query(session, query_id)
        require_participant(actor, query.from_user_id, query.to_user_id)
        previous = query.status
        query.status = status

    log_audit_event(
        AuditAction.STATUS_CHANGE,
        ResourceType.QUERY,
        query.id,
        actor.user_id,
        details={"from": previous.value, "to": status.value},
    )
    return _serialize_query(query)


async def get_queries_for_user(
    session: AsyncSession, actor: Identity, user_id: int
) -> List[Dict[str, Any]]:
    """
    Every query the user sent or received, newest first.

    Each entry carries ``is_owner`` (the user is the sender), both
    participants' names and the full response list in posting order.
    """
    if actor.user_id != user_id:
        raise Forbidden("Queries can only be listed by their participants")

    sender = aliased(User)
    recipient = aliased(User)
    result = await session.execute(
        select(Query, sender, recipient)
        .outerjoin(sender, sender.id == Query.from_user_id)
        .outerjoin(recipient, recipient.id == Query.to_user_id)
        .where(or_(Query.from_user_id == user_id, Query.to_user_id == user_id))
        .order_by(Query.created_at.desc(), Query.id.desc())
    )
    rows = result.all()

    responses: Dict[int, List[Dict[str, Any]]] = {query.id: [] for query, _, _ in rows}
    if responses:
        response_rows = await session.execute(
            select(QueryResponse)
            .where(QueryResponse.query_id.in_(list(responses)))
            .order_by(QueryResponse.created_at, QueryResponse.id)
        )
        for response in response_rows.scalars().all():
            responses[response.query_id].append(_serialize_response(response))

    threads = []
    for query, from_user, to_user in rows:
        data = _serialize_query(query)
        data.update(
            {
                "from_user_name": display_name(from_user),
                "to_user_name": display_name(to_user),
                "responses": responses[query.id],
                "is_owner": query.from_user_id == user_id,
            }
        )
        threads.append(data)
    return threads


async def mark_response_as_read(
    session: AsyncSession, actor: Identity, response_id: int
) -> Dict[str, Any]:
    """
    Raises:
        ResponseNotFound: Unknown response id
        Forbidden: The actor is not a participant of the thread
    """
    async with unit_of_work(session):
        response = await session.get(QueryResponse, response_id)
        if response is None:
            raise ResponseNotFound(response_id=response_id)
        query = await _require_query(session, response.query_id)
        require_participant(actor, query.from_user_id, query.to_user_id)
        response.is_read = True

    return _serialize_response(response)
