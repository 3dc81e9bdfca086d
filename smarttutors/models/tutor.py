from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from .base import MongoBaseModel


class Tutor(MongoBaseModel):
    tutor_id: str
    name: str
    phone: str
    email: Optional[EmailStr] = None
    password: str
    university: Optional[str] = None
    university_short_form: Optional[str] = None
    department: Optional[str] = None
    experience: Optional[str] = None
    version: Optional[Literal["EM", "BM", "EV"]] = None
    group: Optional[Literal["Science", "Arts", "Commerce"]] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
