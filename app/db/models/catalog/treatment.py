# app/db/models/catalog/treatment.py
from typing import Optional
from sqlmodel import SQLModel, Field
from ....utils import utc_now
from datetime import datetime


class Treatment(SQLModel, table=True):
    """Treatments and multi-session packages share one catalog table."""
    __tablename__ = "treatments"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=150)
    kind: str = Field(default="treatment", max_length=20)  # treatment | package
    price: Optional[int] = None
    duration_minutes: Optional[int] = None
    sessions: int = Field(default=1)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
