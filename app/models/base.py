"""
Pydantic base models for API responses.

DESIGN PRINCIPLE:
- Models should reflect data structure, not business logic
- Keep models simple and focused on validation
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Optional

from app.utils.firestore_helpers import utcnow


class BaseResponse(BaseModel):
    """
    Base response model for API responses.
    All API responses can extend this for consistency.
    """
    success: bool = True
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class DataResponse(BaseResponse):
    """Response carrying a payload under `data`."""
    data: Any = None
