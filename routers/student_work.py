from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app_logging import get_logger
from database import get_db
from dependencies import get_current_user, require_student
from errors import MissingFieldsError
from models import (
    AssessmentPlan,
    AssessmentPlanCpt,
    Interpretation,
    PerformedTest,
    StudentNote,
    utcnow,
)
from schemas import (
    AssessmentPlanCptCreate,
    AssessmentPlanCreate,
    AssessmentPlanOut,
    CurrentUser,
    InterpretationOut,
    PerformedTestCreate,
    PerformedTestOut,
    StudentNoteCreate,
    StudentNoteOut,
)

router = APIRouter(prefix="/api")
log = get_logger("student_work")

TESTING_SECTION = "testing"
EXAM_CARD_PREFIX = "exam:"


@router.post("/student-notes", summary="Save Student Notes", description="Save notes for a case section, or interpretations for the testing section.")
def save_student_notes(data: StudentNoteCreate, db: Session = Depends(get_db), user: CurrentUser = Depends(require_student)):
    if data.section == TESTING_SECTION and data.interpretations is not None:
        for interp in data.interpretations:
            db.add(Interpretation(case_id=data.case_id, **interp.model_dump()))
        db.commit()
        log.info(f"Saved {len(data.interpretations)} interpretation(s) for case {data.case_id}")
        return {"success": True}

    note = (
        db.query(StudentNote)
        .filter(
            StudentNote.case_id == data.case_id,
            StudentNote.student_id == user.id,
            StudentNote.section == data.section,
        )
        .first()
    )
    if note is None:
        note = StudentNote(case_id=data.case_id, student_id=user.id, section=data.section)
        db.add(note)
    note.notes = data.notes
    note.submitted_at = utcnow()
    db.commit()
    return {"success": True}


@router.get("/student-notes", response_model=List[StudentNoteOut], summary="Get Student Notes")
def get_student_notes(
    case_id: int,
    section: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return (
        db.query(StudentNote)
        .filter(StudentNote.case_id == case_id, StudentNote.section == section, StudentNote.student_id == user.id)
        .order_by(StudentNote.submitted_at.desc())
        .all()
    )


@router.get("/student-notes/exam-cards", summary="Exam Card Notes", description="All per-test exam notes (sections like 'exam:va').")
def get_exam_card_notes(
    case_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_student),
):
    if not case_id:
        raise MissingFieldsError("case_id")
    rows = (
        db.query(StudentNote.section, StudentNote.notes, StudentNote.submitted_at)
        .filter(
            StudentNote.case_id == case_id,
            StudentNote.student_id == user.id,
            StudentNote.section.startswith(EXAM_CARD_PREFIX, autoescape=True),
        )
        .order_by(StudentNote.submitted_at.desc())
        .all()
    )
    return [{"section": section, "notes": notes, "submitted_at": submitted_at} for section, notes, submitted_at in rows]


@router.get("/interpretations", response_model=List[InterpretationOut], summary="Get Interpretations")
def get_interpretations(case_id: Optional[int] = None, db: Session = Depends(get_db)):
    if not case_id:
        raise MissingFieldsError("case_id")
    return (
        db.query(Interpretation)
        .filter(Interpretation.case_id == case_id)
        .order_by(Interpretation.date.asc(), Interpretation.test_type.asc())
        .all()
    )


@router.post("/assessment-plan", summary="Save Assessment & Plan", description="Insert the student's ICD-10 assessments with their plans.")
def save_assessment_plan(data: AssessmentPlanCreate, db: Session = Depends(get_db), user: CurrentUser = Depends(require_student)):
    rows = [
        AssessmentPlan(
            case_id=data.case_id,
            student_id=user.id,
            icd10_code=item.icd10_code,
            assessment=item.assessment,
            plan=item.plan,
        )
        for item in data.assessments
    ]
    db.add_all(rows)
    db.commit()
    return {"success": True, "insertedIds": [row.id for row in rows]}


@router.get("/assessment-plan", response_model=List[AssessmentPlanOut], summary="Get Assessment & Plan")
def get_assessment_plan(case_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(require_student)):
    return (
        db.query(AssessmentPlan)
        .filter(AssessmentPlan.case_id == case_id, AssessmentPlan.student_id == user.id)
        .order_by(AssessmentPlan.id.asc())
        .all()
    )


@router.post("/assessment-plan-cpt", summary="Save CPT Codes", description="Save CPT codes linked to previously saved assessments.")
def save_assessment_plan_cpt(data: AssessmentPlanCptCreate, db: Session = Depends(get_db), user: CurrentUser = Depends(require_student)):
    if not data.cpt_codes:
        return {"success": True, "message": "No CPT codes to save"}
    for cpt in data.cpt_codes:
        db.add(
            AssessmentPlanCpt(
                assessment_plan_id=cpt.applies_to[0] if cpt.applies_to else None,
                cpt_code=cpt.code,
                applies_to=list(cpt.applies_to),
            )
        )
    db.commit()
    return {"success": True}


@router.post("/performed-tests", summary="Record Performed Test")
def save_performed_test(data: PerformedTestCreate, db: Session = Depends(get_db), user: CurrentUser = Depends(require_student)):
    if not data.case_id or not data.kind or not data.test:
        raise MissingFieldsError()
    db.add(PerformedTest(case_id=data.case_id, kind=data.kind, test=data.test))
    db.commit()
    return {"success": True}


@router.get("/performed-tests", response_model=List[PerformedTestOut], summary="Get Performed Tests")
def get_performed_tests(case_id: Optional[int] = None, db: Session = Depends(get_db)):
    if not case_id:
        raise MissingFieldsError("case_id")
    return (
        db.query(PerformedTest)
        .filter(PerformedTest.case_id == case_id)
        .order_by(PerformedTest.performed_at.asc(), PerformedTest.id.asc())
        .all()
    )
