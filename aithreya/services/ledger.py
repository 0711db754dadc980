"""
Progress ledger: one record per (user, content) pair.

Records move ``not-started -> in-progress -> completed``; bookmarking is an
independent flag. Two rules force completion regardless of what else the
caller asked for: a completion percentage reaching 100, and a quiz attempt
scoring 80 or more.

XP is not awarded here. Callers pass the outcome to
``services.gamification`` explicitly.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aithreya.core.errors import InvalidArgument, NotFound
from aithreya.models.orm import Progress, ProgressHighlight, ProgressNote, ProgressStatus, QuizAttempt

logger = logging.getLogger(__name__)

QUIZ_COMPLETION_SCORE = 80
NOTE_MAX_LENGTH = 1000
FEEDBACK_MAX_LENGTH = 500


class ProgressLedger:
    def __init__(self, db: Session):
        self.db = db

    # ---------- lookup ----------

    def find(self, user_id: int, content_id: int) -> Optional[Progress]:
        return self.db.scalar(
            select(Progress).where(Progress.user_id == user_id, Progress.content_id == content_id)
        )

    def get(self, user_id: int, content_id: int) -> Progress:
        record = self.find(user_id, content_id)
        if record is None:
            raise NotFound("Progress not found for this content")
        return record

    def find_or_create(self, user_id: int, content_id: int) -> Tuple[Progress, bool]:
        """Return the record for the pair, creating it if missing.

        The insert runs in a savepoint. If a concurrent request inserted the
        same pair first, the unique constraint rejects ours and the existing
        row is used instead.
        """
        record = self.find(user_id, content_id)
        if record is not None:
            return record, False
        record = Progress(user_id=user_id, content_id=content_id)
        try:
            with self.db.begin_nested():
                self.db.add(record)
        except IntegrityError:
            logger.info(f"Progress for user={user_id} content={content_id} created concurrently, reusing it")
            existing = self.find(user_id, content_id)
            if existing is None:
                raise
            return existing, False
        return record, True

    # ---------- transitions ----------

    def start(self, user_id: int, content_id: int) -> Progress:
        record, _ = self.find_or_create(user_id, content_id)
        record.mark_as_started()
        self.db.flush()
        return record

    def record_time(self, record: Progress, seconds: int) -> Progress:
        if seconds is None or seconds < 0:
            raise InvalidArgument.for_field("timeSpent", "Time spent must be a positive number")
        record.add_time_spent(seconds)
        return record

    def set_completion_percentage(self, record: Progress, percentage: float) -> Progress:
        if percentage is None or not 0 <= percentage <= 100:
            raise InvalidArgument.for_field(
                "completionPercentage", "Completion percentage must be between 0 and 100"
            )
        record.completion_percentage = percentage
        record.touch()
        if percentage >= 100:
            record.mark_as_completed()
        return record

    def complete(self, record: Progress) -> Progress:
        record.mark_as_completed()
        return record

    def set_status(self, record: Progress, status: str) -> Progress:
        try:
            status = ProgressStatus(status).value
        except ValueError:
            raise InvalidArgument.for_field("status", "Invalid status")
        # a full percentage keeps the record completed
        if status == ProgressStatus.COMPLETED.value or record.completion_percentage >= 100:
            record.mark_as_completed()
        else:
            record.status = status
            record.touch()
        return record

    def update(
        self,
        user_id: int,
        content_id: int,
        status: Optional[str] = None,
        completion_percentage: Optional[float] = None,
        time_spent: Optional[int] = None,
    ) -> Progress:
        record, created = self.find_or_create(user_id, content_id)
        if created:
            record.mark_as_started()
        if completion_percentage is not None:
            self.set_completion_percentage(record, completion_percentage)
        if status is not None:
            self.set_status(record, status)
        if time_spent:
            self.record_time(record, time_spent)
        self.db.flush()
        return record

    def record_quiz_attempt(
        self,
        record: Progress,
        score: float,
        total_questions: int,
        correct_answers: int,
        time_taken: Optional[int] = None,
    ) -> QuizAttempt:
        errors = []
        if score is None or not 0 <= score <= 100:
            errors.append({"field": "score", "message": "Score must be between 0 and 100"})
        if total_questions is None or total_questions < 1:
            errors.append({"field": "totalQuestions", "message": "Total questions must be a positive number"})
        if correct_answers is None or correct_answers < 0:
            errors.append({"field": "correctAnswers", "message": "Correct answers must be a non-negative number"})
        elif total_questions and correct_answers > total_questions:
            errors.append({"field": "correctAnswers", "message": "Correct answers cannot exceed total questions"})
        if time_taken is not None and time_taken < 0:
            errors.append({"field": "timeTaken", "message": "Time taken must be a positive number"})
        if errors:
            raise InvalidArgument("Validation failed", errors=errors)

        attempt = record.add_quiz_attempt(score, total_questions, correct_answers, time_taken)
        self.db.flush()
        return attempt

    def toggle_bookmark(self, record: Progress) -> bool:
        bookmarked = record.toggle_bookmark()
        self.db.flush()
        return bookmarked

    def add_note(self, record: Progress, text: str) -> ProgressNote:
        text = (text or "").strip()
        if not text:
            raise InvalidArgument.for_field("text", "Note text is required")
        if len(text) > NOTE_MAX_LENGTH:
            raise InvalidArgument.for_field("text", "Note cannot exceed 1000 characters")
        note = record.add_note(text)
        record.touch()
        self.db.flush()
        return note

    def add_highlight(
        self,
        record: Progress,
        text: str,
        color: str = "yellow",
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> ProgressHighlight:
        if start is not None and end is not None and end < start:
            raise InvalidArgument.for_field("position.end", "Highlight end must not precede its start")
        highlight = record.add_highlight(text, color or "yellow", start, end)
        record.touch()
        self.db.flush()
        return highlight

    def rate(self, record: Progress, rating: int, feedback: Optional[str] = None) -> Progress:
        if rating is None or not 1 <= rating <= 5:
            raise InvalidArgument.for_field("rating", "Rating must be between 1 and 5")
        if feedback is not None and len(feedback) > FEEDBACK_MAX_LENGTH:
            raise InvalidArgument.for_field("feedback", "Feedback cannot exceed 500 characters")
        record.set_rating(rating, feedback)
        self.db.flush()
        return record

    # ---------- queries ----------

    def list_for_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        is_bookmarked: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Progress], int]:
        conditions = [Progress.user_id == user_id]
        if status:
            conditions.append(Progress.status == status)
        if is_bookmarked is not None:
            conditions.append(Progress.is_bookmarked == is_bookmarked)
        return self._page(conditions, Progress.last_accessed_at.desc(), page, limit)

    def bookmarks(self, user_id: int, page: int = 1, limit: int = 20) -> Tuple[List[Progress], int]:
        conditions = [Progress.user_id == user_id, Progress.is_bookmarked.is_(True)]
        return self._page(conditions, Progress.bookmarked_at.desc(), page, limit)

    def _page(self, conditions, order_by, page: int, limit: int) -> Tuple[List[Progress], int]:
        total = self.db.scalar(select(func.count()).select_from(Progress).where(*conditions)) or 0
        items = self.db.execute(
            select(Progress).where(*conditions).order_by(order_by, Progress.id.desc())
            .offset((page - 1) * limit).limit(limit)
        ).scalars().all()
        return list(items), total

    def overall_progress(self, user_id: int) -> Dict[str, Any]:
        row = self.db.execute(
            select(
                func.count(Progress.id),
                func.sum(case((Progress.status == ProgressStatus.COMPLETED.value, 1), else_=0)),
                func.sum(case((Progress.status == ProgressStatus.IN_PROGRESS.value, 1), else_=0)),
                func.sum(case((Progress.is_bookmarked.is_(True), 1), else_=0)),
                func.sum(Progress.time_spent),
                func.avg(Progress.best_score),
            ).where(Progress.user_id == user_id)
        ).one()
        total, completed, in_progress, bookmarked, time_spent, average = row
        return {
            "totalContent": int(total or 0),
            "completedContent": int(completed or 0),
            "inProgressContent": int(in_progress or 0),
            "bookmarkedContent": int(bookmarked or 0),
            "totalTimeSpent": int(time_spent or 0),
            "averageScore": float(average) if average is not None else 0,
        }
