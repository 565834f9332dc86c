from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from narrata.db.base import Base


STORY_CATEGORIES = [
    "Fiction",
    "Non-Fiction",
    "Romance",
    "Thriller",
    "Mystery",
    "Science Fiction",
    "Fantasy",
    "Horror",
    "Adventure",
    "Drama",
    "Comedy",
    "Biography",
    "Historical",
    "Other",
]


class StoryStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class Story(Base):
    __tablename__ = "stories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="Other")
    status: Mapped[str] = mapped_column(
        Enum(StoryStatus, name="story_status_enum"),
        nullable=False,
        default=StoryStatus.draft,
        index=True,
    )

    # Engagement counters
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dislikes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def rating(self) -> float:
        """Five-star rating derived from likes vs dislikes; 0 with no votes."""
        votes = (self.likes or 0) + (self.dislikes or 0)
        if votes == 0:
            return 0.0
        return (self.likes or 0) / votes * 5
