from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class RtoWorkCreate(BaseModel):
    # a missing name is a 400 from the route, not a 422
    name: Optional[str] = None


class RtoWorkOut(BaseModel):
    rto_work_id: int
    name: str
    is_default: bool
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True
