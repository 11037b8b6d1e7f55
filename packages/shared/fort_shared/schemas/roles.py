from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class SecurityRoleBase(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    st: Optional[str] = Field(default=None, max_length=60)
    app_id: Optional[int] = None
    resource_ids: List[int] = Field(default_factory=list)
    nav_ids: List[int] = Field(default_factory=list)


class SecurityRoleWrite(SecurityRoleBase):
    id: Optional[int] = None


class SecurityRoleRead(SecurityRoleBase):
    id: int
    created_by: Optional[str] = None
    created_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    last_modified_date: Optional[datetime] = None

    model_config = {"from_attributes": True}
