from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from .base import MongoBaseModel


class Admin(MongoBaseModel):
    username: str
    email: Optional[EmailStr] = None
    name: str = "Administrator"
    password: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
