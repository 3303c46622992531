import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, String, Text, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base


EXCERPT_MAX_LENGTH = 300


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    excerpt = Column(String(EXCERPT_MAX_LENGTH), nullable=False)
    content = Column(Text, nullable=False)
    image_url = Column(String(1024), nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # The unique index is the authoritative slug guard under concurrent writers
    __table_args__ = (
        Index("uq_blog_posts_slug", "slug", unique=True),
        Index("ix_blog_posts_published_created_at", "published", "created_at"),
    )

    def __repr__(self):
        return f"<BlogPost {self.slug}>"
