"""
Users, constitutional content and per-user learning progress.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
import enum

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer,
    JSON, String, Table, Text, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Base(DeclarativeBase):
    pass


class Role(str, enum.Enum):
    USER = "user"
    EDUCATOR = "educator"
    ADMIN = "admin"


class ProgressStatus(str, enum.Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ContentType(str, enum.Enum):
    ARTICLE = "article"
    FUNDAMENTAL_RIGHT = "fundamental-right"
    DIRECTIVE_PRINCIPLE = "directive-principle"
    FUNDAMENTAL_DUTY = "fundamental-duty"
    PREAMBLE = "preamble"
    AMENDMENT = "amendment"
    SCHEDULE = "schedule"


class Difficulty(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class EducationLevel(str, enum.Enum):
    SCHOOL = "school"
    UNDERGRADUATE = "undergraduate"
    POSTGRADUATE = "postgraduate"
    PROFESSIONAL = "professional"
    GENERAL = "general"


class Interest(str, enum.Enum):
    FUNDAMENTAL_RIGHTS = "fundamental-rights"
    DIRECTIVE_PRINCIPLES = "directive-principles"
    FUNDAMENTAL_DUTIES = "fundamental-duties"
    AMENDMENTS = "amendments"
    CASE_LAW = "case-law"
    PREAMBLE = "preamble"
    GOVERNANCE = "governance"


class Language(str, enum.Enum):
    EN = "en"
    HI = "hi"
    TA = "ta"
    TE = "te"
    KN = "kn"
    ML = "ml"
    MR = "mr"
    GU = "gu"
    BN = "bn"
    PA = "pa"
    OR = "or"


# ========== Credential Store ==========

class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    phone_number: Mapped[Optional[str]] = mapped_column(String(10))
    avatar: Mapped[Optional[str]] = mapped_column(String(500))
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date)
    preferred_language: Mapped[str] = mapped_column(String(5), default=Language.EN.value, nullable=False)
    dark_mode: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    education_level: Mapped[str] = mapped_column(String(20), default=EducationLevel.GENERAL.value, nullable=False)
    interests: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Gamification
    experience_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    streak_current: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    streak_longest: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    streak_last_active_date: Mapped[Optional[date]] = mapped_column(Date)

    # Account status
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=Role.USER.value, nullable=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    progress: Mapped[List["Progress"]] = relationship(back_populates="user")

    def __init__(self, **kwargs: Any):
        kwargs.setdefault("experience_points", 0)
        kwargs.setdefault("level", 1)
        kwargs.setdefault("streak_current", 0)
        kwargs.setdefault("streak_longest", 0)
        kwargs.setdefault("role", Role.USER.value)
        kwargs.setdefault("is_active", True)
        super().__init__(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Public representation; the password hash is never included."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "avatar": self.avatar,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "preferredLanguage": self.preferred_language,
            "darkMode": self.dark_mode,
            "notificationsEnabled": self.notifications_enabled,
            "educationLevel": self.education_level,
            "interests": list(self.interests or []),
            "experiencePoints": self.experience_points,
            "level": self.level,
            "streak": {
                "current": self.streak_current,
                "longest": self.streak_longest,
                "lastActiveDate": (
                    self.streak_last_active_date.isoformat() if self.streak_last_active_date else None
                ),
            },
            "isEmailVerified": self.is_email_verified,
            "isActive": self.is_active,
            "role": self.role,
            "lastLoginAt": _iso(self.last_login_at),
            "createdAt": _iso(self.created_at),
        }


# ========== Content Catalog ==========

content_relations = Table(
    "content_relations",
    Base.metadata,
    Column("content_id", Integer, ForeignKey("contents.id", ondelete="CASCADE"), primary_key=True),
    Column("related_id", Integer, ForeignKey("contents.id", ondelete="CASCADE"), primary_key=True),
)


class Content(Base):
    __tablename__ = "contents"
    __table_args__ = (
        Index("idx_contents_type", "content_type"),
        Index("idx_contents_article", "article_number"),
        Index("idx_contents_part", "part_number"),
        Index("idx_contents_difficulty", "difficulty"),
        Index("idx_contents_active", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    content_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    short_title: Mapped[Optional[str]] = mapped_column(String(255))
    article_number: Mapped[Optional[str]] = mapped_column(String(20))

    # language code -> text, "en" always present
    content: Mapped[Dict[str, str]] = mapped_column(JSON, nullable=False)
    explanation: Mapped[Dict[str, str]] = mapped_column(JSON, nullable=False)
    key_points: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    keywords: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    part_number: Mapped[Optional[str]] = mapped_column(String(10))
    part_title: Mapped[Optional[str]] = mapped_column(String(255))
    chapter_number: Mapped[Optional[str]] = mapped_column(String(10))
    chapter_title: Mapped[Optional[str]] = mapped_column(String(255))

    difficulty: Mapped[str] = mapped_column(String(20), default=Difficulty.BEGINNER.value, nullable=False)
    estimated_read_time: Mapped[int] = mapped_column(Integer, default=5, nullable=False)

    audio_url: Mapped[Optional[str]] = mapped_column(String(500))
    video_url: Mapped[Optional[str]] = mapped_column(String(500))
    image_url: Mapped[Optional[str]] = mapped_column(String(500))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    related_articles: Mapped[List["Content"]] = relationship(
        secondary=content_relations,
        primaryjoin=lambda: Content.id == content_relations.c.content_id,
        secondaryjoin=lambda: Content.id == content_relations.c.related_id,
        lazy="selectin",
    )

    @property
    def reference(self) -> str:
        if self.article_number:
            return f"Article {self.article_number}"
        return self.title

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "articleNumber": self.article_number,
            "contentType": self.content_type,
            "difficulty": self.difficulty,
            "estimatedReadTime": self.estimated_read_time,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "contentType": self.content_type,
            "title": self.title,
            "shortTitle": self.short_title,
            "articleNumber": self.article_number,
            "reference": self.reference,
            "content": dict(self.content or {}),
            "explanation": dict(self.explanation or {}),
            "keyPoints": list(self.key_points or []),
            "keywords": list(self.keywords or []),
            "part": {"number": self.part_number, "title": self.part_title},
            "chapter": {"number": self.chapter_number, "title": self.chapter_title},
            "relatedArticles": [
                {"id": r.id, "title": r.title, "articleNumber": r.article_number, "contentType": r.content_type}
                for r in self.related_articles
            ],
            "difficulty": self.difficulty,
            "estimatedReadTime": self.estimated_read_time,
            "audioUrl": self.audio_url,
            "videoUrl": self.video_url,
            "imageUrl": self.image_url,
            "isActive": self.is_active,
            "publishedAt": _iso(self.published_at),
            "views": self.views,
            "likes": self.likes,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


# ========== Progress Ledger ==========

class Progress(Base):
    __tablename__ = "progress"
    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="uq_progress_user_content"),
        Index("idx_progress_user_status", "user_id", "status"),
        Index("idx_progress_user_bookmark", "user_id", "is_bookmarked"),
        Index("idx_progress_user_accessed", "user_id", "last_accessed_at"),
        Index("idx_progress_completed", "completed_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    content_id: Mapped[int] = mapped_column(Integer, ForeignKey("contents.id"), nullable=False)

    status: Mapped[str] = mapped_column(String(20), default=ProgressStatus.NOT_STARTED.value, nullable=False)
    completion_percentage: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    time_spent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_bookmarked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bookmarked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    best_score: Mapped[Optional[float]] = mapped_column(Float)

    rating: Mapped[Optional[int]] = mapped_column(Integer)
    feedback: Mapped[Optional[str]] = mapped_column(String(500))
    rated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="progress")
    content: Mapped["Content"] = relationship(lazy="selectin")
    quiz_attempts: Mapped[List["QuizAttempt"]] = relationship(
        back_populates="progress", cascade="all, delete-orphan",
        order_by="QuizAttempt.id", lazy="selectin",
    )
    notes: Mapped[List["ProgressNote"]] = relationship(
        back_populates="progress", cascade="all, delete-orphan",
        order_by="ProgressNote.id", lazy="selectin",
    )
    highlights: Mapped[List["ProgressHighlight"]] = relationship(
        back_populates="progress", cascade="all, delete-orphan",
        order_by="ProgressHighlight.id", lazy="selectin",
    )

    def __init__(self, **kwargs: Any):
        # Column defaults only apply at flush; transitions need them right away.
        kwargs.setdefault("status", ProgressStatus.NOT_STARTED.value)
        kwargs.setdefault("completion_percentage", 0)
        kwargs.setdefault("time_spent", 0)
        kwargs.setdefault("view_count", 0)
        kwargs.setdefault("is_bookmarked", False)
        kwargs.setdefault("last_accessed_at", utcnow())
        super().__init__(**kwargs)

    @property
    def is_completed(self) -> bool:
        return self.status == ProgressStatus.COMPLETED.value

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_accessed_at = now or utcnow()

    def mark_as_started(self, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        if self.started_at is None:
            self.started_at = now
        if self.status == ProgressStatus.NOT_STARTED.value:
            self.status = ProgressStatus.IN_PROGRESS.value
        self.touch(now)
        self.view_count += 1

    def mark_as_completed(self, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        self.status = ProgressStatus.COMPLETED.value
        self.completion_percentage = 100
        if self.completed_at is None:
            self.completed_at = now
        self.touch(now)

    def add_time_spent(self, seconds: int, now: Optional[datetime] = None) -> None:
        self.time_spent += seconds
        self.touch(now)

    def add_quiz_attempt(
        self,
        score: float,
        total_questions: int,
        correct_answers: int,
        time_taken: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> "QuizAttempt":
        now = now or utcnow()
        attempt = QuizAttempt(
            score=score,
            total_questions=total_questions,
            correct_answers=correct_answers,
            time_taken=time_taken,
            attempted_at=now,
        )
        self.quiz_attempts.append(attempt)
        if self.best_score is None or score > self.best_score:
            self.best_score = score
        if score >= 80:
            self.mark_as_completed(now)
        return attempt

    def toggle_bookmark(self, now: Optional[datetime] = None) -> bool:
        self.is_bookmarked = not self.is_bookmarked
        self.bookmarked_at = (now or utcnow()) if self.is_bookmarked else None
        return self.is_bookmarked

    def add_note(self, text: str, now: Optional[datetime] = None) -> "ProgressNote":
        now = now or utcnow()
        note = ProgressNote(text=text, created_at=now, updated_at=now)
        self.notes.append(note)
        return note

    def add_highlight(
        self,
        text: str,
        color: str = "yellow",
        start: Optional[int] = None,
        end: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> "ProgressHighlight":
        highlight = ProgressHighlight(
            text=text, color=color, position_start=start, position_end=end, created_at=now or utcnow()
        )
        self.highlights.append(highlight)
        return highlight

    def set_rating(self, rating: int, feedback: Optional[str] = None, now: Optional[datetime] = None) -> None:
        self.rating = rating
        self.feedback = feedback
        self.rated_at = now or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "contentId": self.content_id,
            "content": self.content.summary() if self.content is not None else None,
            "status": self.status,
            "isCompleted": self.is_completed,
            "completionPercentage": self.completion_percentage,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "lastAccessedAt": _iso(self.last_accessed_at),
            "timeSpent": self.time_spent,
            "viewCount": self.view_count,
            "isBookmarked": self.is_bookmarked,
            "bookmarkedAt": _iso(self.bookmarked_at),
            "quizAttempts": [a.to_dict() for a in self.quiz_attempts],
            "bestScore": self.best_score,
            "notes": [n.to_dict() for n in self.notes],
            "highlights": [h.to_dict() for h in self.highlights],
            "rating": self.rating,
            "feedback": self.feedback,
            "ratedAt": _iso(self.rated_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("progress.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    time_taken: Mapped[Optional[int]] = mapped_column(Integer)
    attempted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    progress: Mapped["Progress"] = relationship(back_populates="quiz_attempts")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "totalQuestions": self.total_questions,
            "correctAnswers": self.correct_answers,
            "timeTaken": self.time_taken,
            "attemptedAt": _iso(self.attempted_at),
        }


class ProgressNote(Base):
    __tablename__ = "progress_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("progress.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    progress: Mapped["Progress"] = relationship(back_populates="notes")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class ProgressHighlight(Base):
    __tablename__ = "progress_highlights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("progress.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="yellow", nullable=False)
    position_start: Mapped[Optional[int]] = mapped_column(Integer)
    position_end: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    progress: Mapped["Progress"] = relationship(back_populates="highlights")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "color": self.color,
            "position": {"start": self.position_start, "end": self.position_end},
            "createdAt": _iso(self.created_at),
        }
