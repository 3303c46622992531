from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


# Field rules (required, slug format, title and excerpt length) are enforced by
# PostService so form errors come back with the same messages for every client.
class PostCreateRequest(BaseModel):
    title: str = ""
    slug: Optional[str] = Field(None, description="Derived from the title when omitted")
    excerpt: str = ""
    content: str = ""
    image_url: Optional[str] = None
    published: bool = False


class PostUpdateRequest(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    published: Optional[bool] = None


class TogglePublishedRequest(BaseModel):
    expected_published: Optional[bool] = Field(
        None,
        description="Published value the client last saw. The toggle fails if the stored value differs.",
    )


class PostResponse(BaseModel):
    id: UUID
    title: str
    slug: str
    excerpt: str
    content: str
    image_url: Optional[str]
    published: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PostSummaryResponse(BaseModel):
    id: UUID
    title: str
    slug: str
    excerpt: str
    image_url: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class PostStats(BaseModel):
    total: int
    published: int
    drafts: int


class DashboardResponse(BaseModel):
    posts: list[PostResponse]
    stats: PostStats


class PostMutationResponse(BaseModel):
    post: Optional[PostResponse] = None
    stats: PostStats
    message: str


class PublicPostListResponse(BaseModel):
    posts: list[PostSummaryResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class SlugListResponse(BaseModel):
    slugs: list[str]
