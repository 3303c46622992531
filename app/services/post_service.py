import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    NotFoundError,
    PublishStateConflictError,
    SlugConflictError,
    StoreError,
    ValidationError,
)
from app.core.sanitization import (
    MAX_LENGTHS,
    derive_slug,
    validate_absolute_url,
    validate_slug,
)
from app.models import BlogPost
from app.schemas.posts import PostCreateRequest, PostStats, PostUpdateRequest

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "slug", "excerpt", "content")
POST_FIELDS = ("title", "slug", "excerpt", "content", "image_url", "published")


class PostCollection:
    """
    The admin dashboard's in-memory copy of the post table.

    Stats are always recomputed by scanning the collection, so after a mutation
    is applied here the counts match the posts that are shown.
    """

    def __init__(self, posts: Iterable[BlogPost]):
        self.posts = list(posts)

    def __len__(self):
        return len(self.posts)

    def stats(self) -> PostStats:
        published = sum(1 for post in self.posts if post.published)
        return PostStats(
            total=len(self.posts),
            published=published,
            drafts=len(self.posts) - published,
        )

    def add(self, post: BlogPost) -> None:
        # Newest first, matching the admin listing order
        self.posts.insert(0, post)

    def replace(self, post: BlogPost) -> None:
        self.posts = [post if p.id == post.id else p for p in self.posts]

    def remove(self, post_id: UUID) -> None:
        self.posts = [p for p in self.posts if p.id != post_id]


def _normalize_fields(fields: dict) -> dict:
    """Trim user input the way the editor form does before saving."""
    normalized = dict(fields)
    if normalized.get("title") is not None:
        # Length is checked by validate_post_fields, never truncated here
        normalized["title"] = " ".join(normalized["title"].split())
    if normalized.get("slug") is not None:
        normalized["slug"] = normalized["slug"].strip()
    if normalized.get("excerpt") is not None:
        normalized["excerpt"] = normalized["excerpt"].strip()
    if "image_url" in normalized:
        normalized["image_url"] = (normalized["image_url"] or "").strip() or None
    return normalized


class PostService:
    """Blog post lifecycle: validation, slug uniqueness and draft/published transitions."""

    @staticmethod
    def validate_post_fields(fields: dict) -> None:
        """Raise ValidationError if the field set cannot be stored."""
        if any(not fields.get(name) for name in REQUIRED_FIELDS):
            raise ValidationError("Please fill in all required fields")

        if not validate_slug(fields["slug"]):
            raise ValidationError("Slug can only contain lowercase letters, numbers, and hyphens")

        if len(fields["title"]) > MAX_LENGTHS["title"]:
            raise ValidationError(
                f"Title must be {MAX_LENGTHS['title']} characters or fewer"
            )

        if len(fields["excerpt"]) > MAX_LENGTHS["excerpt"]:
            raise ValidationError(
                f"Excerpt must be {MAX_LENGTHS['excerpt']} characters or fewer"
            )

        image_url = fields.get("image_url")
        if image_url and not validate_absolute_url(image_url):
            raise ValidationError("Image URL must be an absolute http(s) URL")

    @staticmethod
    def ensure_slug_available(
        db: Session,
        slug: str,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        """
        Fast-path duplicate check. The unique index on blog_posts.slug is what
        actually guarantees uniqueness when two writers race.
        """
        query = db.query(BlogPost.id).filter(func.lower(BlogPost.slug) == slug.lower())
        if exclude_id is not None:
            query = query.filter(BlogPost.id != exclude_id)
        if query.first() is not None:
            raise SlugConflictError()

    @staticmethod
    def _commit(db: Session, action: str) -> None:
        """Commit, translating store failures. Rolls back so nothing partial remains."""
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if "slug" in str(e.orig).lower():
                logger.info(f"Slug uniqueness violated while trying to {action} a post")
                raise SlugConflictError()
            logger.error(f"Failed to {action} post: {e}")
            raise StoreError(str(e.orig))
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to {action} post: {e}")
            raise StoreError(str(e))

    @staticmethod
    def list_posts(db: Session) -> list[BlogPost]:
        """All posts, drafts included, newest first (admin read path)."""
        return db.query(BlogPost).order_by(BlogPost.created_at.desc()).all()

    @staticmethod
    def load_collection(db: Session) -> PostCollection:
        return PostCollection(PostService.list_posts(db))

    @staticmethod
    def get_post(db: Session, post_id: UUID) -> BlogPost:
        post = db.query(BlogPost).filter(BlogPost.id == post_id).first()
        if post is None:
            raise NotFoundError("Post")
        return post

    @staticmethod
    def create_post(db: Session, data: PostCreateRequest) -> BlogPost:
        """Validate, check the slug and insert a new post."""
        fields = _normalize_fields(data.model_dump())
        if not fields.get("slug"):
            fields["slug"] = derive_slug(fields.get("title") or "")

        PostService.validate_post_fields(fields)
        PostService.ensure_slug_available(db, fields["slug"])

        now = datetime.utcnow()
        post = BlogPost(
            title=fields["title"],
            slug=fields["slug"],
            excerpt=fields["excerpt"],
            content=fields["content"],
            image_url=fields.get("image_url"),
            published=bool(fields.get("published")),
            created_at=now,
            updated_at=now,
        )
        db.add(post)
        PostService._commit(db, "create")
        db.refresh(post)

        logger.info(f"Created post {post.slug} ({'published' if post.published else 'draft'})")
        return post

    @staticmethod
    def update_post(db: Session, post_id: UUID, data: PostUpdateRequest) -> BlogPost:
        """
        Apply changed fields to a stored post.
        The slug check only runs when the slug actually changes.
        """
        post = PostService.get_post(db, post_id)

        changes = _normalize_fields(data.model_dump(exclude_unset=True))
        if changes.get("published") is None:
            changes.pop("published", None)
        merged = {name: getattr(post, name) for name in POST_FIELDS}
        merged.update(changes)

        PostService.validate_post_fields(merged)
        if merged["slug"] != post.slug:
            PostService.ensure_slug_available(db, merged["slug"], exclude_id=post.id)

        for name in POST_FIELDS:
            setattr(post, name, merged[name])
        post.updated_at = datetime.utcnow()

        PostService._commit(db, "update")
        db.refresh(post)

        logger.info(f"Updated post {post.slug}")
        return post

    @staticmethod
    def toggle_published(
        db: Session,
        post_id: UUID,
        expected: Optional[bool] = None,
    ) -> BlogPost:
        """
        Flip the published flag of a post.

        The write only applies if the stored value still equals `expected`
        (read from the store first when not given).
        """
        if expected is None:
            expected = PostService.get_post(db, post_id).published

        try:
            updated = db.query(BlogPost).filter(
                BlogPost.id == post_id,
                BlogPost.published == expected,
            ).update(
                {"published": not expected, "updated_at": datetime.utcnow()},
                synchronize_session=False,
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to toggle post {post_id}: {e}")
            raise StoreError(str(e))

        if updated == 0:
            # Either the row is gone or someone else flipped it first
            PostService.get_post(db, post_id)
            raise PublishStateConflictError()

        post = PostService.get_post(db, post_id)
        db.refresh(post)
        logger.info(f"Post {post.slug} is now {'published' if post.published else 'a draft'}")
        return post

    @staticmethod
    def delete_post(db: Session, post_id: UUID) -> None:
        """Remove a post permanently."""
        post = PostService.get_post(db, post_id)
        slug = post.slug
        db.delete(post)
        PostService._commit(db, "delete")
        logger.info(f"Deleted post {slug}")
