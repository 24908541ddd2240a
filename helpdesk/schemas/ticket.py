from typing import Literal, Optional

from pydantic import BaseModel, Field

Status = Literal["open", "in_progress", "resolved", "closed"]
Priority = Literal["low", "medium", "high", "urgent"]


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    priority: Priority = "medium"
    category: Optional[str] = None


class TicketUpdate(BaseModel):
    """Partial update: only fields present in the request body are written."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    category: Optional[str] = None
    assigned_to: Optional[int] = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)
