"""Condition bookkeeping for GithubIssue status.

Conditions are unique by ``type``: a new type is appended, an existing type
is overwritten in place so the list keeps its order and length.
"""

import logging
from datetime import datetime, timezone

from controller.errors import RecordNotFound, StatusConflict
from models.data_models import Condition, ConditionStatus, GithubIssue

logger = logging.getLogger(__name__)

OPEN_CONDITION = "Open"

STATUS_CONFLICT_ATTEMPTS = 5


def new_condition(condition_type: str, status: ConditionStatus, reason: str, message: str) -> Condition:
    """Build a condition stamped with the current time."""
    return Condition(
        type=condition_type,
        status=status,
        reason=reason,
        message=message,
        last_transition_time=datetime.now(timezone.utc),
    )


def set_condition(conditions: list[Condition], new: Condition) -> list[Condition]:
    """
    Add a new condition or replace the existing one of the same type.
    
    The list is modified in place and returned. When the status of an
    existing condition does not change, its last_transition_time is kept.
    """
    for index, existing in enumerate(conditions):
        if existing.type == new.type:
            if existing.status == new.status:
                new = new.model_copy(update={"last_transition_time": existing.last_transition_time})
            conditions[index] = new
            return conditions
    
    conditions.append(new)
    return conditions


def map_issue_state(state: str) -> ConditionStatus:
    """Map a GitHub issue state to a condition status."""
    if state == "open":
        return "True"
    if state == "closed":
        return "False"
    return "Unknown"


def issue_condition(number: int, state: str) -> Condition:
    """Condition describing the observed state of the managed issue."""
    status = map_issue_state(state)
    reason = {"True": "IssueOpen", "False": "IssueClosed"}.get(status, "IssueStateUnknown")
    return new_condition(OPEN_CONDITION, status, reason, f"GitHub issue #{number} is {state}")


def _same_conditions(a: list[Condition], b: list[Condition]) -> bool:
    return [c.model_dump() for c in a] == [c.model_dump() for c in b]


def update_status(store, record: GithubIssue, condition: Condition, attempts: int = STATUS_CONFLICT_ATTEMPTS) -> GithubIssue:
    """
    Apply ``condition`` to the record and persist its status.
    
    On a StatusConflict the record is re-fetched and the condition reapplied,
    up to ``attempts`` writes. Nothing is written when the condition list is
    already up to date.
    
    Returns:
        The record as stored after the write (or unchanged)
    
    Raises:
        StatusConflict: If every attempt lost the race
        RecordNotFound: If the record disappeared meanwhile
    """
    current = record
    for attempt in range(1, attempts + 1):
        before = [c.model_copy() for c in current.status.conditions]
        updated = current.model_copy(deep=True)
        set_condition(updated.status.conditions, condition)
        
        if _same_conditions(before, updated.status.conditions):
            return current
        
        try:
            return store.update_status(updated)
        except StatusConflict:
            if attempt == attempts:
                raise
            logger.debug(f"Status conflict on {record.key} (attempt {attempt}/{attempts}), re-fetching")
            refreshed = store.get(record.key)
            if refreshed is None:
                raise RecordNotFound(f"{record.key} was deleted during status update")
            current = refreshed
    
    raise StatusConflict(f"could not update status of {record.key}")
