from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import attempts
from database import get_db
from dependencies import get_current_user
from schemas import CompleteAttemptRequest, CurrentUser, EnsureAttemptRequest, SaveAttemptRequest

router = APIRouter()


@router.post(
    "/case-attempts/ensure",
    summary="Ensure Case Attempt",
    description="Return the caller's in-progress attempt for a case, creating it on first entry. Completed cases are blocked with 403.",
)
def ensure_attempt(
    data: Optional[EnsureAttemptRequest] = None,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    data = data or EnsureAttemptRequest()
    attempt = attempts.ensure_attempt(db, data.case_id, user.id, data.last_page)
    return {"attempt": attempts.serialize(attempt)}


@router.get(
    "/case-attempts/by-case/{case_id}",
    summary="Guard Case Entry",
    description="Look up the caller's attempt for a case without creating one. Completed cases are blocked with 403.",
)
def attempt_by_case(case_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    attempt = attempts.guard_by_case(db, case_id, user.id)
    return {"attempt": attempts.serialize(attempt) if attempt else None}


@router.put(
    "/case-attempts/{attempt_id}/save",
    summary="Autosave Attempt Section",
    description="Overwrite one section (history, exam, assessment, plan, attachments) of an in-progress attempt.",
)
def save_attempt(
    attempt_id: int,
    data: Optional[SaveAttemptRequest] = None,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    data = data or SaveAttemptRequest()
    attempts.save_section(db, attempt_id, user.id, data.section, data.data, data.last_page)
    return {"ok": True}


@router.post(
    "/case-attempts/{attempt_id}/complete",
    summary="Complete Attempt",
    description="Mark the attempt COMPLETED and lock it. Repeated calls report alreadyCompleted.",
)
def complete_attempt(
    attempt_id: int,
    data: Optional[CompleteAttemptRequest] = None,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    data = data or CompleteAttemptRequest()
    return attempts.complete_attempt(db, attempt_id, user.id, data.pdf_url)


@router.get("/my-progress", summary="My Progress", description="All of the caller's attempts, in-progress first.")
def my_progress(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return {"attempts": attempts.list_for_user(db, user.id)}
