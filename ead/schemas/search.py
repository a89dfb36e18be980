"""Search response schemas."""

from typing import Optional
from pydantic import BaseModel


class SearchResult(BaseModel):
    type: str  # course | lesson | material
    id: str
    title: str
    description: str
    course_id: Optional[str] = None
    course_name: Optional[str] = None
    owner_name: Optional[str] = None
    category: Optional[str] = None
    relevance: int


class SearchResponse(BaseModel):
    results: list[SearchResult]
    total: int
