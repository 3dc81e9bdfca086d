from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .base import MongoBaseModel


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    SELECTED_FOR_DEMO = "selected-for-demo"
    CONFIRMED_FEE_PENDING = "confirmed-fee-pending"
    COMPLETED = "completed"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


# Older clients still send "confirmed"; it is never stored
LEGACY_STATUS_ALIASES = {
    "confirmed": ApplicationStatus.CONFIRMED_FEE_PENDING,
}

TERMINAL_STATUSES = frozenset({
    ApplicationStatus.COMPLETED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.WITHDRAWN,
})

ALLOWED_TRANSITIONS = {
    ApplicationStatus.PENDING: frozenset({
        ApplicationStatus.SELECTED_FOR_DEMO,
        ApplicationStatus.CONFIRMED_FEE_PENDING,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.SELECTED_FOR_DEMO: frozenset({
        ApplicationStatus.PENDING,
        ApplicationStatus.CONFIRMED_FEE_PENDING,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.CONFIRMED_FEE_PENDING: frozenset({
        ApplicationStatus.COMPLETED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.COMPLETED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.WITHDRAWN: frozenset(),
}

# Milestone stamped the first time a status is reached
MILESTONE_FIELDS = {
    ApplicationStatus.SELECTED_FOR_DEMO: "confirmed_at",
    ApplicationStatus.CONFIRMED_FEE_PENDING: "confirmed_at",
    ApplicationStatus.COMPLETED: "completed_at",
    ApplicationStatus.REJECTED: "rejected_at",
}


class InvalidStatusError(ValueError):
    pass


class InvalidTransitionError(ValueError):
    def __init__(self, old_status, new_status):
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(f"Cannot move application from '{old_status}' to '{new_status}'")


def parse_status(value) -> ApplicationStatus:
    """Resolve a client-supplied status string, legacy aliases included."""
    if isinstance(value, ApplicationStatus):
        return value
    if value in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[value]
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise InvalidStatusError(f"Invalid status: {value}")


def check_transition(old_status, new_status):
    old = parse_status(old_status)
    new = parse_status(new_status)
    if new not in ALLOWED_TRANSITIONS[old]:
        raise InvalidTransitionError(old.value, new.value)


class MediaFee(BaseModel):
    amount: Optional[float] = None
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    status: Literal["pending", "paid", "overdue"] = "pending"


class Application(MongoBaseModel):
    tuition_id: str
    tutor_id: Optional[str] = None

    # Guest applications only
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None
    guest_experience: Optional[str] = None
    guest_message: Optional[str] = None

    status: ApplicationStatus = ApplicationStatus.PENDING
    applied_at: datetime = Field(default_factory=datetime.utcnow)
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
    media_fee: Optional[MediaFee] = None
    agreed_to_terms: bool = False
    updated_at: Optional[datetime] = None
