"""Search service — relevance-scored scan over courses, lessons and materials."""

from typing import Optional

from sqlalchemy.orm import Session

from ead.models.course import Course, Lesson

# field weights
COURSE_WEIGHTS = {"title": 3, "description": 2, "owner_name": 2, "category": 1}
COURSE_TAG_WEIGHT = 1
LESSON_WEIGHTS = {"title": 3, "description": 2}
LESSON_MATERIAL_WEIGHT = 1
MATERIAL_NAME_WEIGHT = 2
MATERIAL_KIND_WEIGHT = 1


def _matches_filters(course: Course, filters: dict, with_rating: bool = True) -> bool:
    if filters.get("category") and course.category != filters["category"]:
        return False
    if filters.get("level") and course.level != filters["level"]:
        return False
    visibility = filters.get("visibility")
    if visibility and (visibility == "public") != bool(course.is_public):
        return False
    owner = filters.get("owner")
    if owner and owner.lower() not in (course.owner_name or "").lower():
        return False
    if with_rating and filters.get("min_rating") and (course.average_rating or 0) < filters["min_rating"]:
        return False
    return True


def _contains(value: Optional[str], term: str) -> bool:
    return bool(value) and term in value.lower()


def search_content(db: Session, query: str, filters: Optional[dict] = None) -> list[dict]:
    """Score courses, lessons and materials against a query; best matches first.

    With filters but no query, every course passing the filters is returned
    with relevance 1. Lessons and materials are only searched by text.
    """
    term = (query or "").strip().lower()
    filters = {k: v for k, v in (filters or {}).items() if v}
    if not term and not filters:
        return []

    courses = db.query(Course).filter(Course.active.is_(True)).all()
    by_id = {c.id: c for c in courses}
    results = []

    for course in courses:
        if not _matches_filters(course, filters):
            continue
        relevance = 0
        if term:
            for field, weight in COURSE_WEIGHTS.items():
                if _contains(getattr(course, field), term):
                    relevance += weight
            if any(term in (t or "").lower() for t in (course.tags or [])):
                relevance += COURSE_TAG_WEIGHT
        else:
            relevance = 1
        if relevance:
            results.append({
                "type": "course",
                "id": course.id,
                "title": course.title,
                "description": course.description,
                "course_id": course.id,
                "course_name": course.title,
                "owner_name": course.owner_name,
                "category": course.category,
                "relevance": relevance,
            })

    if term:
        lessons = db.query(Lesson).filter(Lesson.active.is_(True)).all()
        for lesson in lessons:
            course = by_id.get(lesson.course_id)
            if not course or not _matches_filters(course, filters, with_rating=False):
                continue
            base = {
                "course_id": course.id,
                "course_name": course.title,
                "owner_name": course.owner_name,
                "category": course.category,
            }

            relevance = 0
            for field, weight in LESSON_WEIGHTS.items():
                if _contains(getattr(lesson, field), term):
                    relevance += weight
            if any(_contains(m.name, term) for m in lesson.materials):
                relevance += LESSON_MATERIAL_WEIGHT
            if relevance:
                results.append({
                    "type": "lesson",
                    "id": lesson.id,
                    "title": lesson.title,
                    "description": lesson.description,
                    "relevance": relevance,
                    **base,
                })

            for material in lesson.materials:
                relevance = 0
                if _contains(material.name, term):
                    relevance += MATERIAL_NAME_WEIGHT
                if _contains(material.kind, term):
                    relevance += MATERIAL_KIND_WEIGHT
                if relevance:
                    results.append({
                        "type": "material",
                        "id": material.id,
                        "title": material.name,
                        "description": f"Material for lesson: {lesson.title}",
                        "relevance": relevance,
                        **base,
                    })

    return sorted(results, key=lambda r: r["relevance"], reverse=True)


def get_available_categories(db: Session) -> list[str]:
    rows = db.query(Course.category).filter(Course.active.is_(True)).distinct().all()
    return sorted(r[0] for r in rows if r[0])


def get_available_owners(db: Session) -> list[str]:
    rows = db.query(Course.owner_name).filter(Course.active.is_(True)).distinct().all()
    return sorted(r[0] for r in rows if r[0])
