from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app_logging import get_logger
from database import Base, get_db
from dependencies import require_professor
from errors import CaseNotFoundError
from models import Appointment, AssessmentPlan, Case, CaseCode, ExamSection, History, Patient
from schemas import CaseCreate, CaseDetail, CaseOut, CurrentUser, StudentCaseOut

router = APIRouter(prefix="/api")
log = get_logger("cases")


def _row_to_dict(row: Optional[Base]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {column.key: getattr(row, column.key) for column in inspect(row).mapper.column_attrs}


def _get_case_or_404(db: Session, case_id: int) -> Case:
    case = db.query(Case).filter(Case.case_id == case_id).first()
    if case is None:
        raise CaseNotFoundError(case_id)
    return case


@router.post("/cases", response_model=CaseOut, summary="Create Case", description="Create the basics of a new case (professors only).")
def create_case(data: CaseCreate, db: Session = Depends(get_db), user: CurrentUser = Depends(require_professor)):
    case = Case(case_name=data.case_name, instructions=data.instructions, created_by=user.username)
    db.add(case)
    db.commit()
    db.refresh(case)
    log.info(f"New case created with ID: {case.case_id}")
    return case


@router.get("/cases", response_model=List[CaseOut], summary="List Cases")
def list_cases(db: Session = Depends(get_db)):
    return db.query(Case).order_by(Case.case_id.desc()).all()


@router.get("/cases/{case_id}", response_model=CaseDetail, summary="Case Detail", description="A case with its patient, appointment, history, exam, assessments and CPT codes.")
def get_case(case_id: int, db: Session = Depends(get_db)):
    case = _get_case_or_404(db, case_id)

    def first(model):
        return _row_to_dict(db.query(model).filter(model.case_id == case_id).first())

    assessments = (
        db.query(AssessmentPlan.icd10_code, AssessmentPlan.plan)
        .filter(AssessmentPlan.case_id == case_id)
        .all()
    )
    cpt_codes = db.query(CaseCode.cpt_code).filter(CaseCode.case_id == case_id).all()

    return CaseDetail(
        **CaseOut.model_validate(case).model_dump(),
        patient=first(Patient),
        appointment=first(Appointment),
        history=first(History),
        exam=first(ExamSection),
        assessments=[{"icd10_code": code, "plan": plan} for code, plan in assessments],
        cpt_codes=[code for (code,) in cpt_codes],
    )


@router.delete("/cases/{case_id}", summary="Delete Case", description="Delete a case and everything attached to it (professors only).")
def delete_case(case_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(require_professor)):
    case = _get_case_or_404(db, case_id)
    db.delete(case)
    db.commit()
    log.info(f"Case {case_id} deleted by {user.username!r}")
    return {"success": True}


@router.get("/student-cases", response_model=List[StudentCaseOut], summary="Student Case List", description="Simplified case list with appointment and patient summary.")
def list_student_cases(db: Session = Depends(get_db)):
    rows = (
        db.query(Case, Appointment, Patient)
        .outerjoin(Appointment, Appointment.case_id == Case.case_id)
        .outerjoin(Patient, Patient.case_id == Case.case_id)
        .order_by(Case.created_at.desc(), Case.case_id.desc())
        .all()
    )
    results = []
    for case, appointment, patient in rows:
        item = StudentCaseOut(case_id=case.case_id, case_name=case.case_name, created_by=case.created_by, created_at=case.created_at)
        if appointment is not None:
            item.appt_date = appointment.date
            item.appt_time = appointment.time.strftime("%H:%M") if appointment.time else None
            item.exam_type = appointment.exam_type
            item.patient_name = appointment.patient_name
        if patient is not None:
            item.dob = patient.dob
            item.race = patient.race
            item.address = patient.address
            item.vision_insurance = patient.vision_insurance
            item.vision_insurance_info = patient.vision_insurance_info
            item.medical_insurance = patient.medical_insurance
            item.medical_insurance_info = patient.medical_insurance_info
        results.append(item)
    return results
