from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from alesteb.core.timeutils import utc_now, UTCDateTime


class ContactMessage(SQLModel, table=True):
    __tablename__ = "contact_messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str
    subject: str
    message: str
    phone: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
