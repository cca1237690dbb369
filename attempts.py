"""
Case attempt lifecycle.

One attempt per (student, case). An attempt is created IN_PROGRESS, its five
section payloads are autosaved independently, and it is locked for good once
COMPLETED. The caller's identity is always passed in as ``user_id``.
"""
from typing import Any, List, Optional

from sqlalchemy import case as sql_case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app_logging import get_logger
from errors import AttemptNotFoundError, BadSectionError, CaseCompletedError, MissingCaseIdError
from models import AttemptStatus, Case, CaseAttempt, utcnow
from schemas import AttemptOut, AttemptSummary

log = get_logger("attempts")

INITIAL_PAGE = "history"

SECTION_COLUMNS = {
    "history": "history_json",
    "exam": "exam_json",
    "assessment": "assessment_json",
    "plan": "plan_json",
    "attachments": "attachments_json",
}


def serialize(attempt: CaseAttempt) -> dict:
    return AttemptOut.model_validate(attempt).model_dump()


def get_attempt_by_case_for_user(db: Session, case_id: int, user_id: int) -> Optional[CaseAttempt]:
    return (
        db.query(CaseAttempt)
        .filter(CaseAttempt.case_id == case_id, CaseAttempt.user_id == user_id)
        .first()
    )


def get_attempt_by_id_for_user(db: Session, attempt_id: int, user_id: int) -> Optional[CaseAttempt]:
    return (
        db.query(CaseAttempt)
        .filter(CaseAttempt.attempt_id == attempt_id, CaseAttempt.user_id == user_id)
        .first()
    )


def _page(last_page: Any) -> Optional[str]:
    """Non-string cursors are ignored."""
    return last_page if isinstance(last_page, str) and last_page else None


def _raise_if_completed(attempt: Optional[CaseAttempt]) -> None:
    if attempt is not None and attempt.status == AttemptStatus.COMPLETED:
        raise CaseCompletedError(attempt=serialize(attempt))


def ensure_attempt(
    db: Session, case_id: Optional[int], user_id: int, last_page: Any = None
) -> CaseAttempt:
    """
    Return the caller's attempt for a case, creating it on first entry.

    Raises CaseCompletedError (carrying the attempt) when the case is finished.
    Creation relies on the (case_id, user_id) unique constraint: a concurrent
    request that wins the insert is picked up by re-reading after rollback.
    """
    if not case_id:
        raise MissingCaseIdError()

    existing = get_attempt_by_case_for_user(db, case_id, user_id)
    if existing is None:
        attempt = CaseAttempt(
            case_id=case_id,
            user_id=user_id,
            status=AttemptStatus.IN_PROGRESS.value,
            last_page=_page(last_page) or INITIAL_PAGE,
        )
        db.add(attempt)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = get_attempt_by_case_for_user(db, case_id, user_id)
            if existing is None:
                # Not a duplicate: most likely the case itself does not exist.
                raise
            log.info(f"Concurrent ensure for case={case_id} user={user_id}; reusing attempt {existing.attempt_id}")
        else:
            db.refresh(attempt)
            log.info(f"Attempt {attempt.attempt_id} started: case={case_id} user={user_id}")
            return attempt

    _raise_if_completed(existing)
    if _page(last_page):
        existing.last_page = last_page
        existing.updated_at = utcnow()
        db.commit()
        db.refresh(existing)
    return existing


def guard_by_case(db: Session, case_id: Optional[int], user_id: int) -> Optional[CaseAttempt]:
    """Read-only check before a case is opened. Never creates an attempt."""
    if not case_id:
        raise MissingCaseIdError()
    attempt = get_attempt_by_case_for_user(db, case_id, user_id)
    _raise_if_completed(attempt)
    return attempt


def save_section(
    db: Session,
    attempt_id: int,
    user_id: int,
    section: Any,
    data: Any,
    last_page: Any = None,
) -> None:
    """Overwrite one section payload of an in-progress attempt."""
    attempt = get_attempt_by_id_for_user(db, attempt_id, user_id)
    if attempt is None:
        raise AttemptNotFoundError()
    if attempt.status == AttemptStatus.COMPLETED:
        raise CaseCompletedError()

    column = SECTION_COLUMNS.get(section) if isinstance(section, str) else None
    if column is None:
        raise BadSectionError(section)

    setattr(attempt, column, data if data is not None else {})
    if _page(last_page):
        attempt.last_page = last_page
    attempt.updated_at = utcnow()
    db.commit()


def complete_attempt(
    db: Session, attempt_id: int, user_id: int, pdf_url: Optional[str] = None
) -> dict:
    """Lock the attempt. Completing twice is a no-op reported as alreadyCompleted."""
    attempt = get_attempt_by_id_for_user(db, attempt_id, user_id)
    if attempt is None:
        raise AttemptNotFoundError()
    if attempt.status == AttemptStatus.COMPLETED:
        return {"ok": True, "alreadyCompleted": True}

    now = utcnow()
    attempt.status = AttemptStatus.COMPLETED.value
    attempt.pdf_url = pdf_url or None
    attempt.completed_at = now
    attempt.updated_at = now
    db.commit()
    log.info(f"Attempt {attempt_id} completed by user={user_id}")
    return {"ok": True}


def list_for_user(db: Session, user_id: int) -> List[AttemptSummary]:
    """All attempts of a user, in-progress ones first, most recently touched first."""
    in_progress_first = sql_case((CaseAttempt.status == AttemptStatus.IN_PROGRESS.value, 0), else_=1)
    rows = (
        db.query(CaseAttempt, Case.case_name)
        .join(Case, Case.case_id == CaseAttempt.case_id)
        .filter(CaseAttempt.user_id == user_id)
        .order_by(in_progress_first, CaseAttempt.updated_at.desc())
        .all()
    )
    return [
        AttemptSummary(
            attempt_id=attempt.attempt_id,
            case_id=attempt.case_id,
            case_name=case_name,
            status=attempt.status,
            last_page=attempt.last_page,
            started_at=attempt.started_at,
            updated_at=attempt.updated_at,
            completed_at=attempt.completed_at,
            pdf_url=attempt.pdf_url,
        )
        for attempt, case_name in rows
    ]
