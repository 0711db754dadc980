"""
Content catalog: lookup, filtering, text search and localization.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import String, asc, cast, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aithreya.core.errors import Conflict, InvalidArgument, NotFound
from aithreya.models.orm import Content

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "createdAt": Content.created_at,
    "publishedAt": Content.published_at,
    "title": Content.title,
    "articleNumber": Content.article_number,
    "views": Content.views,
    "difficulty": Content.difficulty,
}

# column attribute -> payload key, for create/update
EDITABLE_FIELDS = {
    "slug": "slug",
    "content_type": "contentType",
    "title": "title",
    "short_title": "shortTitle",
    "article_number": "articleNumber",
    "content": "content",
    "explanation": "explanation",
    "key_points": "keyPoints",
    "keywords": "keywords",
    "part_number": "partNumber",
    "part_title": "partTitle",
    "chapter_number": "chapterNumber",
    "chapter_title": "chapterTitle",
    "difficulty": "difficulty",
    "estimated_read_time": "estimatedReadTime",
    "audio_url": "audioUrl",
    "video_url": "videoUrl",
    "image_url": "imageUrl",
    "is_active": "isActive",
}


def _terms(query: str) -> List[str]:
    return [t for t in re.split(r"\W+", query.lower()) if t]


def relevance(content: Content, terms: Iterable[str]) -> float:
    """Count term occurrences over the searchable fields; title hits weigh double."""
    title = (content.title or "").lower()
    body = " ".join([
        (content.content or {}).get("en", ""),
        (content.explanation or {}).get("en", ""),
    ]).lower()
    keywords = [k.lower() for k in (content.keywords or [])]
    score = 0.0
    for term in terms:
        score += 2 * title.count(term)
        score += body.count(term)
        score += sum(1 for k in keywords if term in k)
    return score


class ContentCatalog:
    def __init__(self, db: Session, default_language: str = "en"):
        self.db = db
        self.default_language = default_language

    # ---------- lookup ----------

    def find_by_id(self, content_id: int, include_inactive: bool = False) -> Optional[Content]:
        content = self.db.get(Content, content_id)
        if content is None or (not content.is_active and not include_inactive):
            return None
        return content

    def get_by_id(self, content_id: int, include_inactive: bool = False) -> Content:
        content = self.find_by_id(content_id, include_inactive)
        if content is None:
            raise NotFound("Content not found")
        return content

    def find_by_article_number(self, article_number: str) -> Optional[Content]:
        return self.db.scalar(
            select(Content).where(Content.article_number == article_number, Content.is_active.is_(True))
        )

    def list(
        self,
        content_type: Optional[str] = None,
        difficulty: Optional[str] = None,
        part: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[Content], int]:
        conditions = [Content.is_active.is_(True)]
        if content_type:
            conditions.append(Content.content_type == content_type)
        if difficulty:
            conditions.append(Content.difficulty == difficulty)
        if part:
            conditions.append(Content.part_number == part)

        column = SORTABLE_FIELDS.get(sort_by, Content.created_at)
        order = asc(column) if sort_order == "asc" else desc(column)
        total = self.db.scalar(select(func.count()).select_from(Content).where(*conditions)) or 0
        items = self.db.execute(
            select(Content).where(*conditions).order_by(order, Content.id)
            .offset((page - 1) * limit).limit(limit)
        ).scalars().all()
        return list(items), total

    def list_by_type(self, content_type: str) -> List[Content]:
        return list(self.db.execute(
            select(Content)
            .where(Content.content_type == content_type, Content.is_active.is_(True))
            .order_by(Content.article_number, Content.id)
        ).scalars().all())

    def search(
        self,
        query: str,
        content_type: Optional[str] = None,
        difficulty: Optional[str] = None,
        limit: Optional[int] = 20,
    ) -> List[Tuple[Content, float]]:
        terms = _terms(query or "")
        if not terms:
            raise InvalidArgument.for_field("q", "Search query is required")

        matches = []
        for term in terms:
            pattern = f"%{term}%"
            matches.extend([
                func.lower(Content.title).like(pattern),
                func.lower(cast(Content.content, String)).like(pattern),
                func.lower(cast(Content.explanation, String)).like(pattern),
                func.lower(cast(Content.keywords, String)).like(pattern),
            ])
        conditions = [Content.is_active.is_(True), or_(*matches)]
        if content_type:
            conditions.append(Content.content_type == content_type)
        if difficulty:
            conditions.append(Content.difficulty == difficulty)

        candidates = self.db.execute(select(Content).where(*conditions)).scalars().all()
        scored = [(c, relevance(c, terms)) for c in candidates]
        # JSON casts also match non-English text; drop rows with no scored hit
        scored = [item for item in scored if item[1] > 0]
        scored.sort(key=lambda item: (-item[1], item[0].id))
        return scored[:limit]

    # ---------- localization ----------

    def get_localized(self, content: Content, language: Optional[str] = None) -> Dict[str, Any]:
        language = language or self.default_language
        texts = content.content or {}
        explanations = content.explanation or {}
        return {
            "title": content.title,
            "content": texts.get(language) or texts.get(self.default_language),
            "explanation": explanations.get(language) or explanations.get(self.default_language),
            "contentType": content.content_type,
            "articleNumber": content.article_number,
            "language": language if texts.get(language) else self.default_language,
        }

    def present(self, content: Content, language: Optional[str] = None) -> Dict[str, Any]:
        data = content.to_dict()
        data["localizedContent"] = self.get_localized(content, language)
        return data

    # ---------- writes ----------

    def record_view(self, content: Content) -> None:
        content.views += 1
        self.db.flush()

    def create(self, data: Dict[str, Any]) -> Content:
        content = Content(views=0, likes=0)
        self._apply(content, data)
        try:
            with self.db.begin_nested():
                self.db.add(content)
        except IntegrityError:
            raise Conflict.for_field("slug", f"Content with slug '{data.get('slug')}' already exists")
        logger.info(f"Content created: {content.slug}")
        return content

    def update(self, content: Content, data: Dict[str, Any]) -> Content:
        self._apply(content, data)
        try:
            with self.db.begin_nested():
                self.db.flush()
        except IntegrityError:
            raise Conflict.for_field("slug", f"Content with slug '{data.get('slug')}' already exists")
        return content

    def deactivate(self, content: Content) -> None:
        content.is_active = False
        self.db.flush()
        logger.info(f"Content deactivated: {content.slug}")

    def _apply(self, content: Content, data: Dict[str, Any]) -> None:
        for attr, key in EDITABLE_FIELDS.items():
            if key in data and data[key] is not None:
                value = data[key]
                if attr == "keywords":
                    value = [k.lower() for k in value]
                setattr(content, attr, value)
        if "relatedArticles" in data and data["relatedArticles"] is not None:
            related = []
            for related_id in data["relatedArticles"]:
                if related_id == content.id:
                    continue
                related.append(self.get_by_id(related_id, include_inactive=True))
            content.related_articles = related
