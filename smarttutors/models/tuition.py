from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .base import MongoBaseModel


class TuitionStatus(str, Enum):
    OPEN = "open"
    AVAILABLE = "available"
    DEMO_RUNNING = "demo running"
    BOOKED = "booked"
    BOOKED_BY_OTHER = "booked by other"


# Tuitions that still accept applications
OPEN_STATUSES = frozenset({TuitionStatus.OPEN.value, TuitionStatus.AVAILABLE.value})

TuitionVersion = Literal["Bangla Medium", "English Medium", "English Version", "Others"]


class ApplicationRef(BaseModel):
    tutor_id: str
    applied_date: datetime = Field(default_factory=datetime.utcnow)


class Tuition(MongoBaseModel):
    code: str
    guardian_name: str
    guardian_number: str
    guardian_address: Optional[str] = None
    class_name: str
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
    applications: List[ApplicationRef] = []
    created_at: datetime = Field(default_factory=datetime.utcnow)
