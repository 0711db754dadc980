import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import Query, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from aithreya.core.errors import NotFound
from aithreya.models.orm import Content
from aithreya.services.catalog import ContentCatalog


class CamelModel(BaseModel):
    """Request body accepting camelCase keys (snake_case also accepted)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


@dataclass
class Pagination:
    page: int
    limit: int

    def envelope(self, items: List[Any], total: int, key: str) -> Dict[str, Any]:
        return {
            "success": True,
            "count": len(items),
            "total": total,
            "page": self.page,
            "pages": math.ceil(total / self.limit) if self.limit else 0,
            "data": {key: items},
        }


def get_pagination(
    request: Request,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
) -> Pagination:
    settings = request.app.state.settings
    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    return Pagination(page=page, limit=limit)


def ok(data: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def catalog_for(request: Request, db: Session) -> ContentCatalog:
    return ContentCatalog(db, default_language=request.app.state.settings.DEFAULT_LANGUAGE)


def require_content(request: Request, db: Session, content_id: int) -> Content:
    content = catalog_for(request, db).find_by_id(content_id)
    if content is None:
        raise NotFound("Content not found")
    return content
