"""
Audit logging for workflow transitions.

Each state-changing operation emits one structured JSON line on the
``recruitment.audit`` logger, suitable for log shipping and later review.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional, Set

from core.utils.datetime import now

logger = logging.getLogger("recruitment.audit")


class AuditAction(str, Enum):
    """Audit log action types."""
    SIGNUP = "SIGNUP"
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    # Workflow transitions
    UPLOAD = "UPLOAD"
    SHORTLIST = "SHORTLIST"
    REVIEW = "REVIEW"
    SCHEDULE = "SCHEDULE"
    CONFIRM = "CONFIRM"
    COMPLETE = "COMPLETE"
    CANCEL = "CANCEL"
    STATUS_CHANGE = "STATUS_CHANGE"
    CLOSE = "CLOSE"
    RESPOND = "RESPOND"


class ResourceType(str, Enum):
    """Resource types for audit logging."""
    USER = "USER"
    CANDIDATE = "CANDIDATE"
    PROJECT = "PROJECT"
    ACHIEVEMENT = "ACHIEVEMENT"
    RESUME_UPLOAD = "RESUME_UPLOAD"
    JOB = "JOB"
    APPLICATION = "APPLICATION"
    INTERVIEW = "INTERVIEW"
    FEEDBACK = "FEEDBACK"
    QUERY = "QUERY"


# PII fields that should be masked in logs
PII_FIELDS: Set[str] = {
    "email", "phone", "first_name", "last_name", "name",
    "candidate_name", "candidate_email", "interviewer_email",
    "expected_salary", "salary_min", "salary_max",
}


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Recursively mask PII fields in data structures.

    Args:
        data: Data to mask (dict, list, or primitive)
        depth: Current recursion depth (max 10)

    Returns:
        Data with PII fields masked
    """
    if depth > 10:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key.lower() in PII_FIELDS:
                if isinstance(value, str) and len(value) > 0:
                    # Partial masking: show first char and length indicator
                    masked[key] = f"{value[0]}***[{len(value)}]"
                else:
                    masked[key] = "[MASKED]"
            else:
                masked[key] = mask_pii(value, depth + 1)
        return masked
    elif isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:5]]
    else:
        return data


def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[int] = None,
    user_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Log an audit event for a workflow transition.

    Args:
        action: What happened
        resource_type: Kind of entity affected
        resource_id: Id of the affected entity
        user_id: Acting user, if any
        details: Extra context; PII keys are masked

    Returns:
        The event as logged
    """
    event = {
        "timestamp": now().isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": str(resource_id) if resource_id is not None else None,
        "user_id": user_id,
        "details": mask_pii(details) if details else None,
    }
    logger.info(json.dumps(event, default=str))
    return event
