# ========================================
# smarttutors/schemas/application.py
# ========================================

from pydantic import Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from smarttutors.models.application import parse_status
from .base import CamelModel


# 1. Input: Submit Application (guest or registered tutor)
class ApplicationCreate(CamelModel):
    tuition_id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    experience: Optional[str] = None
    message: Optional[str] = None
    agreed_to_terms: bool = False
    confirmation_text: Optional[str] = None


class MediaFeeSchema(CamelModel):
    amount: Optional[float] = None
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    status: Literal["pending", "paid", "overdue"] = "pending"


# 2. Input: General Update (PATCH). Every field is optional; only fields sent are applied.
class ApplicationPatch(CamelModel):
    status: Optional[str] = None
    feedback: Optional[str] = None
    guardian_feedback: Optional[str] = None
    demo_date: Optional[datetime] = None
    demo_completed: Optional[bool] = None
    demo_feedback: Optional[str] = None
    demo_instructions: Optional[str] = None
    media_fee: Optional[MediaFeeSchema] = None
    notes: Optional[str] = None
    guardian_contact_sent: Optional[bool] = None
    confirmation_text: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is None:
            return v
        return parse_status(v).value

    # Stored flags are never null; an explicit null clears them
    @field_validator("demo_completed", "guardian_contact_sent")
    @classmethod
    def null_flag_is_false(cls, v):
        return bool(v)


# 3. Input: Admin Update (PUT). Same fields, status is mandatory.
class ApplicationAdminUpdate(ApplicationPatch):
    status: str


# 4. Output: populated tutor and tuition summaries
class TutorSummary(CamelModel):
    id: Optional[str] = None
    tutor_id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    university: Optional[str] = None
    university_short_form: Optional[str] = None
    department: Optional[str] = None
    experience: Optional[str] = None
    version: Optional[str] = None
    group: Optional[str] = None
    gender: Optional[str] = None


class TuitionSummary(CamelModel):
    id: Optional[str] = None
    code: Optional[str] = None
    class_name: Optional[str] = Field(default=None, alias="class")
    version: Optional[str] = None
    subjects: List[str] = []
    location: Optional[str] = None
    salary: Optional[str] = None
    status: Optional[str] = None


# 5. Output: Application record
class ApplicationResponse(CamelModel):
    id: str
    tuition_id: str
    tutor_id: Optional[str] = None
    status: str

    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None
    guest_experience: Optional[str] = None
    guest_message: Optional[str] = None

    applied_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None

    demo_instructions: Optional[str] = None
    demo_date: Optional[datetime] = None
    demo_completed: bool = False
    demo_feedback: Optional[str] = None

    guardian_contact_sent: bool = False
    guardian_contact_sent_at: Optional[datetime] = None

    confirmation_text: Optional[str] = None
    feedback: Optional[str] = None
    guardian_feedback: Optional[str] = None
    notes: Optional[str] = None
    media_fee: Optional[MediaFeeSchema] = None
    agreed_to_terms: bool = False
    updated_at: Optional[datetime] = None

    tutor: Optional[TutorSummary] = None
    tuition: Optional[TuitionSummary] = None


class ApplicationEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    application: ApplicationResponse


class ApplicationListResponse(CamelModel):
    success: bool = True
    applications: List[ApplicationResponse]


class ApplicationUpdateResponse(CamelModel):
    success: bool = True
    message: str
    application: ApplicationResponse
    email_sent: bool = False
