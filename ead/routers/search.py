"""Search router — catalog search with filters."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.schemas.search import SearchResult, SearchResponse
from ead.middleware.auth import get_current_user
from ead.services import search_service

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResponse)
def search(
    q: str = "",
    category: Optional[str] = None,
    level: Optional[str] = None,
    visibility: Optional[str] = None,
    owner: Optional[str] = None,
    min_rating: Optional[float] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    filters = {
        "category": category,
        "level": level,
        "visibility": visibility,
        "owner": owner,
        "min_rating": min_rating,
    }
    results = search_service.search_content(db, q, filters)
    return SearchResponse(results=[SearchResult(**r) for r in results], total=len(results))


@router.get("/categories", response_model=list[str])
def categories(db: Session = Depends(get_db)):
    return search_service.get_available_categories(db)


@router.get("/owners", response_model=list[str])
def owners(db: Session = Depends(get_db)):
    return search_service.get_available_owners(db)
