"""Courses router — catalog management, lessons, materials and uploads."""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.models.course import Course, Lesson, Material
from ead.schemas.course import (
    CourseCreate,
    CourseUpdate,
    CourseResponse,
    CourseListResponse,
    LessonCreate,
    LessonUpdate,
    LessonResponse,
    LessonListResponse,
    MaterialCreate,
    MaterialResponse,
)
from ead.middleware.auth import (
    get_current_user,
    require_teacher,
    can_manage_course,
    ensure_course_access,
)
from ead.services import catalog_service
from ead.services.blob_store import BlobStore, get_blob_store
from ead.services.upload_service import store_upload, release_blobs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["courses"])

# file extension -> material kind
MATERIAL_EXTENSIONS = {
    "pdf": "pdf",
    "png": "image", "jpg": "image", "jpeg": "image", "gif": "image", "webp": "image",
    "mp4": "video", "mov": "video", "avi": "video", "webm": "video",
}


def blob_url(blob_id: str) -> str:
    return f"/api/courses/blobs/{blob_id}"


def _course_to_response(course: Course) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        owner_id=course.owner_id,
        owner_name=course.owner_name,
        title=course.title,
        description=course.description or "",
        thumbnail=course.thumbnail,
        category=course.category,
        level=course.level,
        tags=list(course.tags or []),
        price=course.price or 0.0,
        is_public=course.is_public,
        active=course.active,
        estimated_minutes=course.estimated_minutes or 0,
        student_count=course.student_count or 0,
        average_rating=course.average_rating or 0.0,
        rating_count=course.rating_count or 0,
        lessons_count=len([l for l in course.lessons if l.active]) if course.lessons else 0,
        created_at=course.created_at.isoformat(),
    )


def _material_to_response(material: Material) -> MaterialResponse:
    content = material.content if material.kind == "link" else blob_url(material.content)
    return MaterialResponse(
        id=material.id,
        lesson_id=material.lesson_id,
        name=material.name,
        kind=material.kind,
        content=content,
        size=material.size,
        created_at=material.created_at.isoformat(),
    )


def _lesson_to_response(lesson: Lesson) -> LessonResponse:
    return LessonResponse(
        id=lesson.id,
        course_id=lesson.course_id,
        title=lesson.title,
        description=lesson.description or "",
        position=lesson.position,
        video_blob_id=lesson.video_blob_id,
        video_name=lesson.video_name,
        duration_minutes=lesson.duration_minutes,
        active=lesson.active,
        materials=[_material_to_response(m) for m in lesson.materials],
        created_at=lesson.created_at.isoformat(),
    )


def _get_course_or_404(db: Session, course_id: str) -> Course:
    course = catalog_service.get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _get_managed_course(db: Session, course_id: str, user: User) -> Course:
    course = _get_course_or_404(db, course_id)
    if not can_manage_course(user, course):
        raise HTTPException(status_code=403, detail="Not your course")
    return course


def _get_managed_lesson(db: Session, lesson_id: str, user: User) -> Lesson:
    lesson = catalog_service.get_lesson(db, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    _get_managed_course(db, lesson.course_id, user)
    return lesson


# ── Courses ──────────────────────────────────────────────────────────────────


@router.get("", response_model=CourseListResponse)
def list_courses(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The active catalog."""
    courses = catalog_service.list_courses(db)
    return CourseListResponse(
        courses=[_course_to_response(c) for c in courses],
        total=len(courses),
    )


@router.get("/mine", response_model=CourseListResponse)
def list_my_courses(
    current_user: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """Courses owned by the current teacher, including inactive ones."""
    courses = catalog_service.list_courses(db, active_only=False, owner_id=current_user.id)
    return CourseListResponse(
        courses=[_course_to_response(c) for c in courses],
        total=len(courses),
    )


@router.post("", response_model=CourseResponse, status_code=201)
def create_course(
    req: CourseCreate,
    current_user: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    course = catalog_service.create_course(
        db,
        owner_id=current_user.id,
        title=req.title,
        description=req.description,
        is_public=req.is_public,
        category=req.category,
        level=req.level,
        tags=req.tags,
        price=req.price,
        thumbnail=req.thumbnail,
    )
    return _course_to_response(course)


@router.get("/{course_id}", response_model=CourseResponse)
def get_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    course = _get_course_or_404(db, course_id)
    if not course.active and not can_manage_course(current_user, course):
        raise HTTPException(status_code=404, detail="Course not found")
    return _course_to_response(course)


@router.put("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    req: CourseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_managed_course(db, course_id, current_user)
    course = catalog_service.update_course(db, course_id, req.model_dump(exclude_unset=True))
    return _course_to_response(course)


@router.delete("/{course_id}", status_code=204)
async def delete_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    """Delete a course with its lessons, progress, enrollments, engagement and chat."""
    _get_managed_course(db, course_id, current_user)
    blob_ids = catalog_service.delete_course(db, course_id)
    await release_blobs(db, store, blob_ids)


# ── Lessons ──────────────────────────────────────────────────────────────────


@router.get("/{course_id}/lessons", response_model=LessonListResponse)
def list_lessons(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active lessons in order; managers also see inactive ones."""
    course = _get_course_or_404(db, course_id)
    if can_manage_course(current_user, course):
        lessons = sorted(course.lessons, key=lambda l: l.position)
    else:
        lessons = catalog_service.get_lessons_by_course(db, course_id)
    return LessonListResponse(
        lessons=[_lesson_to_response(l) for l in lessons],
        total=len(lessons),
    )


@router.post("/{course_id}/lessons", response_model=LessonResponse, status_code=201)
def create_lesson(
    course_id: str,
    req: LessonCreate,
    current_user: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    _get_managed_course(db, course_id, current_user)
    lesson = catalog_service.create_lesson(
        db,
        course_id=course_id,
        title=req.title,
        description=req.description,
        duration_minutes=req.duration_minutes,
    )
    return _lesson_to_response(lesson)


@router.put("/lessons/{lesson_id}", response_model=LessonResponse)
def update_lesson(
    lesson_id: str,
    req: LessonUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_managed_lesson(db, lesson_id, current_user)
    lesson = catalog_service.update_lesson(db, lesson_id, req.model_dump(exclude_unset=True))
    return _lesson_to_response(lesson)


@router.delete("/lessons/{lesson_id}", status_code=204)
async def delete_lesson(
    lesson_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    _get_managed_lesson(db, lesson_id, current_user)
    blob_ids = catalog_service.delete_lesson(db, lesson_id)
    await release_blobs(db, store, blob_ids)


@router.post("/lessons/{lesson_id}/video", response_model=LessonResponse)
async def upload_video(
    lesson_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    """Attach (or replace) the lesson video."""
    lesson = _get_managed_lesson(db, lesson_id, current_user)
    previous = lesson.video_blob_id

    content = await file.read()
    blob_id = await store_upload(store, content, "video")
    lesson = catalog_service.update_lesson(
        db, lesson_id, {"video_blob_id": blob_id, "video_name": file.filename or "video"}
    )
    if previous and previous != blob_id:
        await release_blobs(db, store, [previous])
    logger.info("video for lesson %s stored as %s (%d bytes)", lesson_id, blob_id, len(content))
    return _lesson_to_response(lesson)


# ── Materials ────────────────────────────────────────────────────────────────


@router.post("/lessons/{lesson_id}/materials", response_model=MaterialResponse, status_code=201)
def add_link_material(
    lesson_id: str,
    req: MaterialCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_managed_lesson(db, lesson_id, current_user)
    material = catalog_service.add_material(db, lesson_id, name=req.name, kind="link", content=req.url)
    return _material_to_response(material)


@router.post("/lessons/{lesson_id}/materials/upload", response_model=MaterialResponse, status_code=201)
async def upload_material(
    lesson_id: str,
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    _get_managed_lesson(db, lesson_id, current_user)

    filename = file.filename or "file"
    ext = Path(filename).suffix.lower().lstrip(".")
    kind = MATERIAL_EXTENSIONS.get(ext, "other")

    content = await file.read()
    blob_id = await store_upload(store, content, "material")
    material = catalog_service.add_material(
        db, lesson_id, name=name or filename, kind=kind, content=blob_id, size=len(content)
    )
    return _material_to_response(material)


@router.delete("/materials/{material_id}", status_code=204)
async def delete_material(
    material_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    material = db.get(Material, material_id)
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    _get_managed_lesson(db, material.lesson_id, current_user)
    blob_id = catalog_service.remove_material(db, material_id)
    if blob_id:
        await release_blobs(db, store, [blob_id])


# ── Blobs ────────────────────────────────────────────────────────────────────


@router.get("/blobs/{blob_id}")
async def download_blob(
    blob_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    """Serve a lesson video or material to users who can access its course."""
    lesson = db.query(Lesson).filter(Lesson.video_blob_id == blob_id).first()
    if not lesson:
        material = db.query(Material).filter(Material.kind != "link", Material.content == blob_id).first()
        lesson = material.lesson if material else None
    if not lesson:
        raise HTTPException(status_code=404, detail="File not found")
    ensure_course_access(db, current_user, _get_course_or_404(db, lesson.course_id))

    data = await store.get(blob_id)
    if data is None:
        raise HTTPException(status_code=404, detail="File not found")
    return Response(content=data, media_type="application/octet-stream")
