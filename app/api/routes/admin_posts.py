from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_admin
from app.schemas.auth import AdminSession
from app.schemas.posts import (
    DashboardResponse,
    PostCreateRequest,
    PostMutationResponse,
    PostResponse,
    PostUpdateRequest,
    TogglePublishedRequest,
)
from app.services.post_service import PostService

router = APIRouter(prefix="/admin", tags=["Admin Posts"])


@router.get("", response_model=DashboardResponse)
def dashboard(
    db: Session = Depends(get_db),
    admin: AdminSession = Depends(get_current_admin),
):
    """
    Admin dashboard: every post (drafts included), newest first, with counts.
    """
    collection = PostService.load_collection(db)
    return DashboardResponse(
        posts=[PostResponse.model_validate(post) for post in collection.posts],
        stats=collection.stats(),
    )


@router.post("/posts", response_model=PostMutationResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    data: PostCreateRequest,
    db: Session = Depends(get_db),
    admin: AdminSession = Depends(get_current_admin),
):
    """
    Create a post. The slug is derived from the title when left empty.
    """
    collection = PostService.load_collection(db)
    post = PostService.create_post(db, data)
    collection.add(post)

    return PostMutationResponse(
        post=PostResponse.model_validate(post),
        stats=collection.stats(),
        message="Post created successfully!",
    )


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(
    post_id: UUID,
    db: Session = Depends(get_db),
    admin: AdminSession = Depends(get_current_admin),
):
    return PostService.get_post(db, post_id)


@router.put("/posts/{post_id}", response_model=PostMutationResponse)
def update_post(
    post_id: UUID,
    data: PostUpdateRequest,
    db: Session = Depends(get_db),
    admin: AdminSession = Depends(get_current_admin),
):
    """Save edits to a post. Only fields present in the body are changed."""
    collection = PostService.load_collection(db)
    post = PostService.update_post(db, post_id, data)
    collection.replace(post)

    return PostMutationResponse(
        post=PostResponse.model_validate(post),
        stats=collection.stats(),
        message="Post updated successfully!",
    )


@router.post("/posts/{post_id}/toggle-published", response_model=PostMutationResponse)
def toggle_published(
    post_id: UUID,
    data: Optional[TogglePublishedRequest] = None,
    db: Session = Depends(get_db),
    admin: AdminSession = Depends(get_current_admin),
):
    """
    Publish a draft or unpublish a post.

    Send the published value the dashboard is showing as `expected_published`;
    if someone else changed it in the meantime the toggle is refused with 409.
    """
    collection = PostService.load_collection(db)
    expected = data.expected_published if data else None
    post = PostService.toggle_published(db, post_id, expected)
    collection.replace(post)

    return PostMutationResponse(
        post=PostResponse.model_validate(post),
        stats=collection.stats(),
        message="Post published" if post.published else "Post moved to drafts",
    )


@router.delete("/posts/{post_id}", response_model=PostMutationResponse)
def delete_post(
    post_id: UUID,
    db: Session = Depends(get_db),
    admin: AdminSession = Depends(get_current_admin),
):
    """Delete a post permanently."""
    collection = PostService.load_collection(db)
    PostService.delete_post(db, post_id)
    collection.remove(post_id)

    return PostMutationResponse(
        post=None,
        stats=collection.stats(),
        message="Post deleted",
    )
