"""
Pydantic schemas for the AI command endpoint.
"""
from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator


class AICommandRequest(BaseModel):
    """Schema for a natural-language command."""
    command: str = Field(..., min_length=1, max_length=1000, description="Free-form RBAC instruction")

    @field_validator("command")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Command is required")
        return v.strip()


class AICommandResponse(BaseModel):
    """Single-command response (documented shape; handlers return JSONResponse)."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Optional[Any] = None
    suggestions: Optional[List[str]] = None
    confidence: Optional[float] = None


class AICommandResult(BaseModel):
    """One entry of a multi-command response."""
    success: bool
    command: str
    index: int
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    data: Optional[Any] = None
    suggestions: List[str] = []
    confidence: Optional[float] = None


class AIBatchResponse(BaseModel):
    """Multi-command response."""
    success: bool
    isMultiCommand: bool = True
    message: str
    results: List[AICommandResult]
