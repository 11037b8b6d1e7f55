from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class SecurityResourceEntityBase(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    url: str = Field(min_length=1, max_length=255)
    st: Optional[str] = Field(default=None, max_length=60)
    app_id: Optional[int] = None


class SecurityResourceEntityWrite(SecurityResourceEntityBase):
    id: Optional[int] = None


class SecurityResourceEntityRead(SecurityResourceEntityBase):
    id: int
    created_by: Optional[str] = None
    created_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    last_modified_date: Optional[datetime] = None

    model_config = {"from_attributes": True}
