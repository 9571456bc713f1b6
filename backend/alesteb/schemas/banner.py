from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class BannerResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    button_text: Optional[str] = None
    button_link: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
