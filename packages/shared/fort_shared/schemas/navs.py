from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class SecurityNavBase(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    icon: Optional[str] = Field(default=None, max_length=50)
    position: Optional[int] = None
    st: Optional[str] = Field(default=None, max_length=60)
    parent_id: Optional[int] = None
    resource_id: Optional[int] = None
    app_id: Optional[int] = None


class SecurityNavWrite(SecurityNavBase):
    id: Optional[int] = None


class SecurityNavRead(SecurityNavBase):
    id: int
    created_by: Optional[str] = None
    created_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    last_modified_date: Optional[datetime] = None

    model_config = {"from_attributes": True}
