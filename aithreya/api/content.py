import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from aithreya.api.common import CamelModel, Pagination, catalog_for, get_pagination, ok
from aithreya.core.auth import get_optional_user, require_roles
from aithreya.core.database import get_db
from aithreya.core.errors import NotFound
from aithreya.models.orm import ContentType, Difficulty, Role, User

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_english(value: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    if value is not None and not (value.get("en") or "").strip():
        raise ValueError("English text is required")
    return value


class ContentCreate(CamelModel):
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    content_type: ContentType
    title: str = Field(min_length=1, max_length=500)
    short_title: Optional[str] = Field(default=None, max_length=255)
    article_number: Optional[str] = Field(default=None, max_length=20)
    content: Dict[str, str]
    explanation: Dict[str, str]
    key_points: List[str] = []
    keywords: List[str] = []
    part_number: Optional[str] = None
    part_title: Optional[str] = None
    chapter_number: Optional[str] = None
    chapter_title: Optional[str] = None
    related_articles: Optional[List[int]] = None
    difficulty: Difficulty = Difficulty.BEGINNER
    estimated_read_time: int = Field(default=5, ge=1)
    audio_url: Optional[str] = None
    video_url: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True

    @field_validator("content", "explanation")
    @classmethod
    def english_required(cls, v):
        return _require_english(v)


class ContentUpdate(CamelModel):
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    content_type: Optional[ContentType] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    short_title: Optional[str] = Field(default=None, max_length=255)
    article_number: Optional[str] = Field(default=None, max_length=20)
    content: Optional[Dict[str, str]] = None
    explanation: Optional[Dict[str, str]] = None
    key_points: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    part_number: Optional[str] = None
    part_title: Optional[str] = None
    chapter_number: Optional[str] = None
    chapter_title: Optional[str] = None
    related_articles: Optional[List[int]] = None
    difficulty: Optional[Difficulty] = None
    estimated_read_time: Optional[int] = Field(default=None, ge=1)
    audio_url: Optional[str] = None
    video_url: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("content", "explanation")
    @classmethod
    def english_required(cls, v):
        return _require_english(v)


def _language(language: Optional[str], user: Optional[User]) -> Optional[str]:
    if language:
        return language
    if user is not None:
        return user.preferred_language
    return None


def _listing(request: Request, db: Session, content_type: str, key: str, language: Optional[str]):
    catalog = catalog_for(request, db)
    items = [catalog.present(c, language) for c in catalog.list_by_type(content_type)]
    return {"success": True, "count": len(items), "data": {key: items}}


@router.get("")
@router.get("/", include_in_schema=False)
def list_content(
    request: Request,
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
    difficulty: Optional[Difficulty] = Query(None),
    part: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    pagination: Pagination = Depends(get_pagination),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    content_type = content_type.value if content_type else None
    difficulty = difficulty.value if difficulty else None

    if search and search.strip():
        scored = catalog.search(search, content_type, difficulty, limit=None)
        total = len(scored)
        start = (pagination.page - 1) * pagination.limit
        items = [content for content, _ in scored[start:start + pagination.limit]]
    else:
        items, total = catalog.list(
            content_type=content_type,
            difficulty=difficulty,
            part=part,
            page=pagination.page,
            limit=pagination.limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    language = _language(language, user)
    return pagination.envelope([catalog.present(c, language) for c in items], total, "contents")


@router.get("/search")
def search_content(
    request: Request,
    q: Optional[str] = Query(None),
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
    difficulty: Optional[Difficulty] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    language: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    scored = catalog.search(
        q or "",
        content_type.value if content_type else None,
        difficulty.value if difficulty else None,
        limit=limit,
    )
    language = _language(language, user)
    results = []
    for content, score in scored:
        item = catalog.present(content, language)
        item["score"] = score
        results.append(item)
    return {"success": True, "count": len(results), "data": {"results": results}}


@router.get("/fundamental-rights")
def fundamental_rights(
    request: Request,
    language: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return _listing(request, db, ContentType.FUNDAMENTAL_RIGHT.value, "rights", _language(language, user))


@router.get("/directive-principles")
def directive_principles(
    request: Request,
    language: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return _listing(request, db, ContentType.DIRECTIVE_PRINCIPLE.value, "principles", _language(language, user))


@router.get("/fundamental-duties")
def fundamental_duties(
    request: Request,
    language: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return _listing(request, db, ContentType.FUNDAMENTAL_DUTY.value, "duties", _language(language, user))


@router.get("/preamble")
def preamble(
    request: Request,
    language: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    items = catalog.list_by_type(ContentType.PREAMBLE.value)
    if not items:
        raise NotFound("Preamble not found")
    return ok({"preamble": catalog.present(items[0], _language(language, user))})


@router.get("/article/{article_number}")
def article_by_number(
    article_number: str,
    request: Request,
    language: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    content = catalog.find_by_article_number(article_number)
    if content is None:
        raise NotFound("Article not found")
    catalog.record_view(content)
    db.commit()
    return ok({"content": catalog.present(content, _language(language, user))})


@router.get("/{content_id}")
def get_content(
    content_id: int,
    request: Request,
    language: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    content = catalog.get_by_id(content_id)
    catalog.record_view(content)
    db.commit()
    return ok({"content": catalog.present(content, _language(language, user))})


# ---------- admin ----------

@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
def create_content(
    payload: ContentCreate,
    request: Request,
    admin: User = Depends(require_roles(Role.ADMIN.value)),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    content = catalog.create(payload.model_dump(by_alias=True, mode="json"))
    db.commit()
    logger.info(f"Content {content.id} created by admin {admin.id}")
    return ok({"content": catalog.present(content)}, "Content created successfully")


@router.put("/{content_id}")
def update_content(
    content_id: int,
    payload: ContentUpdate,
    request: Request,
    admin: User = Depends(require_roles(Role.ADMIN.value)),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    content = catalog.get_by_id(content_id, include_inactive=True)
    catalog.update(content, payload.model_dump(by_alias=True, mode="json", exclude_unset=True))
    db.commit()
    return ok({"content": catalog.present(content)}, "Content updated successfully")


@router.delete("/{content_id}")
def delete_content(
    content_id: int,
    request: Request,
    admin: User = Depends(require_roles(Role.ADMIN.value)),
    db: Session = Depends(get_db),
):
    catalog = catalog_for(request, db)
    catalog.deactivate(catalog.get_by_id(content_id, include_inactive=True))
    db.commit()
    return ok(message="Content deleted successfully")
