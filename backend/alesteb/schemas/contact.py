from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime


class ContactCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=5, max_length=200)
    message: str = Field(min_length=10, max_length=2000)
    phone: Optional[str] = Field(default=None, max_length=20, pattern=r"^\+?[\d\s\-()]{7,20}$")

    @field_validator("name", "subject", "message", mode="before")
    @classmethod
    def strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("phone", mode="before")
    @classmethod
    def empty_phone(cls, value):
        return value or None


class ContactResponse(BaseModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    phone: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ContactAccepted(BaseModel):
    id: int
    email_sent: bool
