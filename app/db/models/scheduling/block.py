# app/db/models/scheduling/block.py
from typing import Optional
from sqlmodel import SQLModel, Field
from ....utils import utc_now
from datetime import datetime, date


class ManualBlock(SQLModel, table=True):
    __tablename__ = "manual_blocks"
    id: Optional[int] = Field(default=None, primary_key=True)
    block_date: date = Field(index=True)
    start_time: str = Field(max_length=8)
    end_time: str = Field(max_length=8)
    type: str = Field(default="manual", max_length=30)
    description: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utc_now)
