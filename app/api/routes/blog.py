import math

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.rate_limit import public_limiter
from app.schemas.posts import (
    PostResponse,
    PostSummaryResponse,
    PublicPostListResponse,
    SlugListResponse,
)
from app.services.blog_service import BlogService

router = APIRouter(prefix="/blog", tags=["Blog"])


@router.get("/posts", response_model=PublicPostListResponse)
@public_limiter.limit("100/minute")
def list_posts(
    request: Request,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """Published posts, newest first, one page at a time."""
    per_page = settings.POSTS_PER_PAGE
    posts, total = BlogService.list_published(db, page=page, per_page=per_page)

    return PublicPostListResponse(
        posts=[PostSummaryResponse.model_validate(post) for post in posts],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=math.ceil(total / per_page) if total else 0,
    )


@router.get("/posts/{slug}", response_model=PostResponse)
@public_limiter.limit("100/minute")
def get_post(
    request: Request,
    slug: str,
    db: Session = Depends(get_db),
):
    """A single published post. Drafts answer 404 like missing posts."""
    post = BlogService.get_published_by_slug(db, slug)
    if post is None:
        raise NotFoundError("Post")
    return post


@router.get("/slugs", response_model=SlugListResponse)
def list_slugs(db: Session = Depends(get_db)):
    """Slugs of every published post, for static generation of post pages."""
    return SlugListResponse(slugs=BlogService.list_published_slugs(db))
