from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import UserRole

DateType = date


# Auth

class UserCreate(BaseModel):
    username: str
    password: str
    role: UserRole = UserRole.STUDENT


class UserLogin(BaseModel):
    username: str
    password: str


class CurrentUser(BaseModel):
    """Caller identity carried in the session cookie."""

    id: int
    username: str
    role: UserRole


# Case attempts

class EnsureAttemptRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"caseId": 12, "lastPage": "history"}},
    )

    case_id: Optional[int] = Field(default=None, alias="caseId")
    last_page: Optional[Any] = Field(default=None, alias="lastPage")


class SaveAttemptRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "section": "history",
                "data": {"cc": "blurry vision"},
                "lastPage": "exam",
            }
        },
    )

    # Loosely typed: unknown sections are rejected by the lifecycle as BAD_SECTION.
    section: Optional[Any] = None
    data: Optional[Any] = None
    last_page: Optional[Any] = Field(default=None, alias="lastPage")


class CompleteAttemptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pdf_url: Optional[str] = Field(default=None, alias="pdfUrl")


class AttemptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attempt_id: int
    case_id: int
    user_id: int
    status: str
    last_page: Optional[str] = None
    history_json: Optional[Any] = None
    exam_json: Optional[Any] = None
    assessment_json: Optional[Any] = None
    plan_json: Optional[Any] = None
    attachments_json: Optional[Any] = None
    pdf_url: Optional[str] = None
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AttemptSummary(BaseModel):
    attempt_id: int
    case_id: int
    case_name: str
    status: str
    last_page: Optional[str] = None
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    pdf_url: Optional[str] = None


# Cases

class CaseCreate(BaseModel):
    case_name: str
    instructions: Optional[str] = None


class CaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    case_id: int
    case_name: str
    instructions: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class StudentCaseOut(BaseModel):
    case_id: int
    case_name: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    appt_date: Optional[date] = None
    appt_time: Optional[str] = None
    exam_type: Optional[str] = None
    patient_name: Optional[str] = None
    dob: Optional[date] = None
    race: Optional[str] = None
    address: Optional[str] = None
    vision_insurance: Optional[str] = None
    vision_insurance_info: Optional[str] = None
    medical_insurance: Optional[str] = None
    medical_insurance_info: Optional[str] = None


# Student work

class InterpretationIn(BaseModel):
    test_type: str
    subtype: Optional[str] = None
    date: Optional[DateType] = None
    reason: Optional[str] = None
    cooperation: Optional[str] = None
    findings_od: Optional[str] = None
    findings_os: Optional[str] = None
    interpretation: Optional[str] = None


class InterpretationOut(InterpretationIn):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(validation_alias="interpretation_id")


class StudentNoteCreate(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"case_id": 12, "section": "exam:va", "notes": "20/40 OD, 20/20 OS"}
        }
    )

    case_id: int
    section: str
    notes: Optional[str] = None
    interpretations: Optional[List[InterpretationIn]] = None


class StudentNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_id: int
    student_id: int
    section: str
    notes: Optional[str] = None
    submitted_at: Optional[datetime] = None


class AssessmentIn(BaseModel):
    icd10_code: str
    assessment: Optional[str] = None
    plan: Optional[str] = None


class AssessmentPlanCreate(BaseModel):
    case_id: int
    assessments: List[AssessmentIn]


class AssessmentPlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    icd10_code: Optional[str] = None
    assessment: Optional[str] = None
    plan: Optional[str] = None
    student_id: Optional[int] = None
    case_id: int


class CptCodeIn(BaseModel):
    code: str
    applies_to: List[int] = []


class AssessmentPlanCptCreate(BaseModel):
    case_id: int
    cpt_codes: Optional[List[CptCodeIn]] = None


class PerformedTestCreate(BaseModel):
    case_id: Optional[int] = None
    kind: Optional[str] = None
    test: Optional[str] = None


class PerformedTestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    test: str
    performed_at: Optional[datetime] = None


# Case detail assembled from the per-case tables

class CaseDetail(CaseOut):
    patient: Optional[Dict[str, Any]] = None
    appointment: Optional[Dict[str, Any]] = None
    history: Optional[Dict[str, Any]] = None
    exam: Optional[Dict[str, Any]] = None
    assessments: List[Dict[str, Any]] = []
    cpt_codes: List[str] = []

