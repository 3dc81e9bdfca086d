from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, Literal

from .base import CamelModel


# 1. For Registration (Input)
class TutorRegister(CamelModel):
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

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


# 2. For Login (Input): phone, email or tutor ID
class TutorLogin(BaseModel):
    identifier: str
    password: str


# 3. For Responses (Output)
class TutorResponse(CamelModel):
    id: str
    tutor_id: str
    name: str
    phone: str
    email: Optional[str] = None
    university: Optional[str] = None
    university_short_form: Optional[str] = None
    department: Optional[str] = None
    experience: Optional[str] = None
    version: Optional[str] = None
    group: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
