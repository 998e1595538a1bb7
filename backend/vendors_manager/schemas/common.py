"""
Response envelope shared by every endpoint
"""
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """{success, data?, error?, message?}"""
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None


class ListResponse(BaseModel, Generic[T]):
    """List envelope with the unpaginated total"""
    success: bool = True
    data: List[T] = Field(default_factory=list)
    total: int = 0


class MessageResponse(BaseModel):
    success: bool = True
    message: str
