from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from alesteb.core.timeutils import utc_now, UTCDateTime


class Banner(SQLModel, table=True):
    __tablename__ = "banners"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    image_key: Optional[str] = None
    button_text: Optional[str] = None
    button_link: Optional[str] = None
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
