import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    STUDENT = "student"
    PROFESSOR = "professor"


class AttemptStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.STUDENT.value)


class Case(Base):
    __tablename__ = "cases"
    case_id = Column(Integer, primary_key=True, index=True)
    case_name = Column(String(255), nullable=False)
    instructions = Column(Text)
    created_by = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    patients = relationship("Patient", cascade="all, delete-orphan")
    appointments = relationship("Appointment", cascade="all, delete-orphan")
    histories = relationship("History", cascade="all, delete-orphan")
    exam_sections = relationship("ExamSection", cascade="all, delete-orphan")
    interpretations = relationship("Interpretation", cascade="all, delete-orphan")
    assessment_plans = relationship("AssessmentPlan", cascade="all, delete-orphan")
    codes = relationship("CaseCode", cascade="all, delete-orphan")
    performed_tests = relationship("PerformedTest", cascade="all, delete-orphan")
    student_notes = relationship("StudentNote", cascade="all, delete-orphan")
    attempts = relationship("CaseAttempt", back_populates="case", cascade="all, delete-orphan")


class Patient(Base):
    __tablename__ = "patients"
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    dob = Column(Date)
    race = Column(String(100))
    address = Column(String(255))
    vision_insurance = Column(String(100))
    vision_insurance_info = Column(String(255))
    medical_insurance = Column(String(100))
    medical_insurance_info = Column(String(255))
    avatar_url = Column(String(500))


class Appointment(Base):
    __tablename__ = "appointments"
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    patient_name = Column(String(255))
    date = Column(Date)
    time = Column(Time)
    exam_type = Column(String(100))


class History(Base):
    __tablename__ = "histories"
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    chief_complaint = Column(Text)
    details = Column(JSON)


class ExamSection(Base):
    __tablename__ = "exam_sections"
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    findings = Column(JSON)
    imaging = Column(JSON)


class Interpretation(Base):
    __tablename__ = "interpretations"
    interpretation_id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    test_type = Column(String(100))
    subtype = Column(String(100))
    date = Column(Date)
    reason = Column(Text)
    cooperation = Column(String(100))
    findings_od = Column(Text)
    findings_os = Column(Text)
    interpretation = Column(Text)


class AssessmentPlan(Base):
    __tablename__ = "assessment_plan"
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), index=True)
    icd10_code = Column(String(20))
    assessment = Column(Text)
    plan = Column(Text)


class AssessmentPlanCpt(Base):
    __tablename__ = "assessment_plan_cpt"
    id = Column(Integer, primary_key=True, index=True)
    assessment_plan_id = Column(Integer, ForeignKey("assessment_plan.id", ondelete="SET NULL"))
    cpt_code = Column(String(20), nullable=False)
    applies_to = Column(JSON)


class CaseCode(Base):
    __tablename__ = "codes"
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    cpt_code = Column(String(20), nullable=False)


class PerformedTest(Base):
    __tablename__ = "performed_tests"
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    kind = Column(String(100), nullable=False)
    test = Column(String(255), nullable=False)
    performed_at = Column(DateTime(timezone=True), default=utcnow)


class StudentNote(Base):
    __tablename__ = "student_notes"
    __table_args__ = (
        UniqueConstraint("case_id", "student_id", "section", name="uq_student_notes_case_student_section"),
    )
    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), index=True, nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    section = Column(String(100), nullable=False)
    notes = Column(Text)
    submitted_at = Column(DateTime(timezone=True), default=utcnow)


class CaseAttempt(Base):
    """A student's single engagement with one case."""

    __tablename__ = "case_attempts"
    __table_args__ = (
        UniqueConstraint("case_id", "user_id", name="uq_case_attempts_case_user"),
    )
    attempt_id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.case_id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    status = Column(String(20), nullable=False, default=AttemptStatus.IN_PROGRESS.value)
    last_page = Column(String(100))
    history_json = Column(JSON)
    exam_json = Column(JSON)
    assessment_json = Column(JSON)
    plan_json = Column(JSON)
    attachments_json = Column(JSON)
    pdf_url = Column(String(1000))
    started_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True))

    case = relationship("Case", back_populates="attempts")
