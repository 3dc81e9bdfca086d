from pydantic import BaseModel


class AdminLogin(BaseModel):
    """Admins sign in with their username or email."""
    username: str
    password: str


class OutboxRetryResponse(BaseModel):
    processed: int
    sent: int
    failed: int
