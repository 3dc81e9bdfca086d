from pydantic import Field
from typing import Optional, List
from datetime import datetime

from smarttutors.models.tuition import TuitionStatus, TuitionVersion
from .base import CamelModel


class TuitionCreate(CamelModel):
    code: Optional[str] = None  # generated from ST150 upward when omitted
    guardian_name: str
    guardian_number: str
    guardian_address: Optional[str] = None
    class_name: str = Field(alias="class")
    version: TuitionVersion = "English Medium"
    subjects: List[str] = []
    weekly_days: Optional[str] = None
    daily_hours: Optional[str] = None
    salary: Optional[str] = None
    location: Optional[str] = None
    start_month: Optional[str] = None
    tutor_gender: str = "Not specified"
    special_remarks: Optional[str] = None
    urgent: bool = False
    status: TuitionStatus = TuitionStatus.OPEN


class TuitionStatusUpdate(CamelModel):
    status: TuitionStatus


# Public view: no guardian contact details
class TuitionPublicResponse(CamelModel):
    id: str
    code: str
    class_name: str = Field(alias="class")
    version: Optional[str] = None
    subjects: List[str] = []
    weekly_days: Optional[str] = None
    daily_hours: Optional[str] = None
    salary: Optional[str] = None
    location: Optional[str] = None
    start_month: Optional[str] = None
    tutor_gender: Optional[str] = None
    special_remarks: Optional[str] = None
    urgent: bool = False
    status: str
    application_count: int = 0
    created_at: Optional[datetime] = None


class TuitionResponse(TuitionPublicResponse):
    guardian_name: str
    guardian_number: str
    guardian_address: Optional[str] = None
