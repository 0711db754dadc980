import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import Field
from sqlalchemy.orm import Session

from aithreya.api.common import CamelModel, Pagination, get_pagination, ok, require_content
from aithreya.core.auth import get_current_user
from aithreya.core.database import get_db
from aithreya.models.orm import ProgressStatus, User, utcnow
from aithreya.services import gamification
from aithreya.services.ledger import ProgressLedger

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])


class ProgressUpdate(CamelModel):
    status: Optional[ProgressStatus] = None
    completion_percentage: Optional[float] = None
    time_spent: Optional[int] = None


class QuizBody(CamelModel):
    score: float
    total_questions: int
    correct_answers: int
    time_taken: Optional[int] = None


class NoteBody(CamelModel):
    text: Optional[str] = None


class HighlightPosition(CamelModel):
    start: Optional[int] = Field(default=None, ge=0)
    end: Optional[int] = Field(default=None, ge=0)


class HighlightBody(CamelModel):
    text: str = Field(min_length=1)
    color: Optional[str] = Field(default=None, max_length=20)
    position: Optional[HighlightPosition] = None


class RatingBody(CamelModel):
    rating: int
    feedback: Optional[str] = None


def _record_activity(user: User) -> None:
    gamification.update_streak(user, utcnow().date())


# ---------- reads ----------

@router.get("/overview")
def overview(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok({"overview": ProgressLedger(db).overall_progress(user.id)})


@router.get("/bookmarks")
def bookmarks(
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = ProgressLedger(db).bookmarks(user.id, pagination.page, pagination.limit)
    return pagination.envelope([p.to_dict() for p in items], total, "bookmarks")


@router.get("")
@router.get("/", include_in_schema=False)
def list_progress(
    status: Optional[ProgressStatus] = Query(None),
    is_bookmarked: Optional[bool] = Query(None, alias="isBookmarked"),
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = ProgressLedger(db).list_for_user(
        user.id,
        status=status.value if status else None,
        is_bookmarked=is_bookmarked,
        page=pagination.page,
        limit=pagination.limit,
    )
    return pagination.envelope([p.to_dict() for p in items], total, "progress")


@router.get("/content/{content_id}")
def content_progress(content_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok({"progress": ProgressLedger(db).get(user.id, content_id).to_dict()})


# ---------- writes ----------

@router.post("/{content_id}")
def update_progress(
    content_id: int,
    payload: ProgressUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    record = ProgressLedger(db).update(
        user.id,
        content_id,
        status=payload.status.value if payload.status else None,
        completion_percentage=payload.completion_percentage,
        time_spent=payload.time_spent,
    )
    _record_activity(user)
    db.commit()
    return ok({"progress": record.to_dict()}, "Progress updated successfully")


@router.post("/{content_id}/start")
def start_content(
    content_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    record = ProgressLedger(db).start(user.id, content_id)
    _record_activity(user)
    db.commit()
    return ok({"progress": record.to_dict()}, "Content started")


@router.post("/{content_id}/complete")
def complete_content(
    content_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    ledger = ProgressLedger(db)
    record, _ = ledger.find_or_create(user.id, content_id)
    ledger.complete(record)
    change = gamification.add_experience(user, gamification.XP_PER_COMPLETION)
    _record_activity(user)
    db.commit()
    if change.leveled_up:
        logger.info(f"User {user.id} reached level {change.new_level}")
    return ok({"progress": record.to_dict()}, "Content completed successfully")


@router.post("/{content_id}/bookmark")
def toggle_bookmark(
    content_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    ledger = ProgressLedger(db)
    record, _ = ledger.find_or_create(user.id, content_id)
    bookmarked = ledger.toggle_bookmark(record)
    db.commit()
    return ok({"progress": record.to_dict()}, "Content bookmarked" if bookmarked else "Bookmark removed")


@router.post("/{content_id}/quiz")
def add_quiz_attempt(
    content_id: int,
    payload: QuizBody,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    ledger = ProgressLedger(db)
    record, _ = ledger.find_or_create(user.id, content_id)
    ledger.record_quiz_attempt(
        record, payload.score, payload.total_questions, payload.correct_answers, payload.time_taken
    )
    xp_earned = gamification.quiz_experience(payload.score)
    change = gamification.add_experience(user, xp_earned)
    _record_activity(user)
    db.commit()
    return ok(
        {
            "progress": record.to_dict(),
            "xpEarned": xp_earned,
            "levelUp": change.leveled_up,
            "newLevel": change.new_level,
        },
        "Quiz attempt recorded",
    )


@router.post("/{content_id}/notes")
def add_note(
    content_id: int,
    payload: NoteBody,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    ledger = ProgressLedger(db)
    record, _ = ledger.find_or_create(user.id, content_id)
    ledger.add_note(record, payload.text)
    db.commit()
    return ok({"progress": record.to_dict()}, "Note added successfully")


@router.post("/{content_id}/highlights")
def add_highlight(
    content_id: int,
    payload: HighlightBody,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    ledger = ProgressLedger(db)
    record, _ = ledger.find_or_create(user.id, content_id)
    position = payload.position or HighlightPosition()
    ledger.add_highlight(record, payload.text, payload.color, position.start, position.end)
    db.commit()
    return ok({"progress": record.to_dict()}, "Highlight added successfully")


@router.post("/{content_id}/rating")
def rate_content(
    content_id: int,
    payload: RatingBody,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_content(request, db, content_id)
    ledger = ProgressLedger(db)
    record, _ = ledger.find_or_create(user.id, content_id)
    ledger.rate(record, payload.rating, payload.feedback)
    db.commit()
    return ok({"progress": record.to_dict()}, "Rating saved successfully")
