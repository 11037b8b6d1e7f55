from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class SecurityLoginEventBase(BaseModel):
    user_login: str = Field(min_length=1, max_length=50)
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=255)
    login_time: Optional[datetime] = None
    token_overdue_time: Optional[datetime] = None
    app_id: Optional[int] = None


class SecurityLoginEventWrite(SecurityLoginEventBase):
    id: Optional[int] = None


class SecurityLoginEventRead(SecurityLoginEventBase):
    id: int

    model_config = {"from_attributes": True}
