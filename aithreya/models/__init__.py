from aithreya.models.orm import (
    Base, Content, ContentType, Difficulty, EducationLevel, Interest, Language,
    Progress, ProgressHighlight, ProgressNote, ProgressStatus, QuizAttempt, Role, User,
)

__all__ = [
    "Base", "Content", "ContentType", "Difficulty", "EducationLevel", "Interest", "Language",
    "Progress", "ProgressHighlight", "ProgressNote", "ProgressStatus", "QuizAttempt", "Role", "User",
]
