import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import BlogPost

logger = logging.getLogger(__name__)


class BlogService:
    """
    Public read paths. Drafts are never returned, and store failures degrade to
    empty results so visitors never see raw store errors.
    """

    @staticmethod
    def list_published(
        db: Session,
        page: int = 1,
        per_page: int = 6,
    ) -> tuple[list[BlogPost], int]:
        """Published posts for one page, newest first, plus the total published count."""
        page = max(page, 1)
        offset = (page - 1) * per_page
        try:
            base = db.query(BlogPost).filter(BlogPost.published == True)  # noqa: E712
            total = base.count()
            posts = base.order_by(BlogPost.created_at.desc()).offset(offset).limit(per_page).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching blog posts: {e}")
            return [], 0
        return posts, total

    @staticmethod
    def get_published_by_slug(db: Session, slug: str) -> Optional[BlogPost]:
        try:
            return db.query(BlogPost).filter(
                BlogPost.slug == slug,
                BlogPost.published == True,  # noqa: E712
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching blog post {slug}: {e}")
            return None

    @staticmethod
    def list_published_slugs(db: Session) -> list[str]:
        """Slugs of every published post, for pre-rendering post pages."""
        try:
            rows = db.query(BlogPost.slug).filter(BlogPost.published == True).all()  # noqa: E712
        except SQLAlchemyError as e:
            logger.error(f"Error fetching blog slugs: {e}")
            return []
        return [row.slug for row in rows]
