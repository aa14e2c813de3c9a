# app/schemas/common.py
from pydantic import BaseModel
from typing import Any, Dict, Optional


class ErrorResponse(BaseModel):
    success: bool = False
    code: Optional[str] = None
    message: str
    details: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
