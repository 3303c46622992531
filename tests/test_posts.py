"""Tests for the post lifecycle service."""

from uuid import uuid4

import pytest

from app.core.exceptions import (
    NotFoundError,
    PublishStateConflictError,
    SlugConflictError,
    ValidationError,
)
from app.models import BlogPost
from app.schemas.posts import PostCreateRequest, PostUpdateRequest
from app.services.post_service import PostCollection, PostService


def make_post(db, **overrides) -> BlogPost:
    data = {
        "title": "My Post",
        "slug": "my-post",
        "excerpt": "Short summary",
        "content": "Body",
    }
    data.update(overrides)
    return PostService.create_post(db, PostCreateRequest(**data))


class TestCreatePost:
    """Test post creation and validation."""

    def test_create_draft(self, db_session):
        post = make_post(db_session)

        assert post.id is not None
        assert post.published is False
        assert post.created_at == post.updated_at

    def test_slug_derived_from_title(self, db_session):
        post = make_post(db_session, title="Café Society", slug=None)

        assert post.slug == "cafe-society"

    def test_blank_slug_is_derived(self, db_session):
        post = make_post(db_session, title="Hello World", slug="  ")

        assert post.slug == "hello-world"

    def test_duplicate_slug_is_rejected(self, db_session):
        make_post(db_session)

        with pytest.raises(SlugConflictError) as exc:
            make_post(db_session, title="Another")

        assert exc.value.status_code == 409
        assert db_session.query(BlogPost).count() == 1

    def test_unique_index_catches_race(self, db_session, monkeypatch):
        """When two writers both pass the pre-check, the store still refuses the second."""
        make_post(db_session)
        monkeypatch.setattr(
            PostService, "ensure_slug_available", staticmethod(lambda db, slug, exclude_id=None: None)
        )

        with pytest.raises(SlugConflictError):
            make_post(db_session, title="Racing")

        assert db_session.query(BlogPost).count() == 1

    @pytest.mark.parametrize("missing", ["title", "excerpt", "content"])
    def test_required_fields(self, db_session, missing):
        with pytest.raises(ValidationError) as exc:
            make_post(db_session, **{missing: "   " if missing != "content" else ""})

        assert exc.value.detail == "Please fill in all required fields"

    def test_bad_slug_format(self, db_session):
        with pytest.raises(ValidationError) as exc:
            make_post(db_session, slug="My Post")

        assert "lowercase letters, numbers, and hyphens" in exc.value.detail

    def test_title_too_long_is_rejected_not_truncated(self, db_session):
        with pytest.raises(ValidationError) as exc:
            make_post(db_session, title="x" * 256)

        assert exc.value.detail == "Title must be 255 characters or fewer"
        assert db_session.query(BlogPost).count() == 0

    def test_title_at_limit(self, db_session):
        post = make_post(db_session, title="  " + "x" * 255 + "  ")

        assert post.title == "x" * 255

    def test_excerpt_too_long(self, db_session):
        with pytest.raises(ValidationError):
            make_post(db_session, excerpt="x" * 301)

    def test_excerpt_at_limit(self, db_session):
        post = make_post(db_session, excerpt="x" * 300)

        assert len(post.excerpt) == 300

    def test_relative_image_url_rejected(self, db_session):
        with pytest.raises(ValidationError):
            make_post(db_session, image_url="/img/cover.png")

    def test_empty_image_url_stored_as_none(self, db_session):
        post = make_post(db_session, image_url="   ")

        assert post.image_url is None


class TestUpdatePost:
    """Test editing existing posts."""

    def test_update_fields(self, db_session):
        post = make_post(db_session)
        created_at = post.created_at

        updated = PostService.update_post(
            db_session, post.id, PostUpdateRequest(title="New Title", content="New body")
        )

        assert updated.title == "New Title"
        assert updated.content == "New body"
        assert updated.slug == "my-post"
        assert updated.created_at == created_at
        assert updated.updated_at >= created_at

    def test_keep_own_slug(self, db_session):
        post = make_post(db_session)

        updated = PostService.update_post(db_session, post.id, PostUpdateRequest(slug="my-post"))

        assert updated.slug == "my-post"

    def test_change_to_taken_slug(self, db_session):
        make_post(db_session, slug="first")
        second = make_post(db_session, slug="second")

        with pytest.raises(SlugConflictError):
            PostService.update_post(db_session, second.id, PostUpdateRequest(slug="first"))

        db_session.expire_all()
        assert PostService.get_post(db_session, second.id).slug == "second"

    def test_update_cannot_blank_required_field(self, db_session):
        post = make_post(db_session)

        with pytest.raises(ValidationError):
            PostService.update_post(db_session, post.id, PostUpdateRequest(title=""))

    def test_update_rejects_overlong_title(self, db_session):
        post = make_post(db_session)

        with pytest.raises(ValidationError):
            PostService.update_post(db_session, post.id, PostUpdateRequest(title="x" * 256))

        db_session.expire_all()
        assert PostService.get_post(db_session, post.id).title == "My Post"

    def test_update_missing_post(self, db_session):
        with pytest.raises(NotFoundError):
            PostService.update_post(db_session, uuid4(), PostUpdateRequest(title="x"))


class TestTogglePublished:
    """Test draft/published transitions."""

    def test_toggle_twice_restores_state(self, db_session):
        post = make_post(db_session)

        assert PostService.toggle_published(db_session, post.id).published is True
        assert PostService.toggle_published(db_session, post.id).published is False

    def test_expected_state_matches(self, db_session):
        post = make_post(db_session)

        toggled = PostService.toggle_published(db_session, post.id, expected=False)

        assert toggled.published is True

    def test_stale_expected_state_conflicts(self, db_session):
        post = make_post(db_session)
        PostService.toggle_published(db_session, post.id, expected=False)

        # A second client that still saw the draft
        with pytest.raises(PublishStateConflictError):
            PostService.toggle_published(db_session, post.id, expected=False)

        db_session.expire_all()
        assert PostService.get_post(db_session, post.id).published is True

    def test_toggle_missing_post(self, db_session):
        with pytest.raises(NotFoundError):
            PostService.toggle_published(db_session, uuid4(), expected=True)


class TestDeletePost:
    def test_delete(self, db_session):
        post = make_post(db_session)

        PostService.delete_post(db_session, post.id)

        assert db_session.query(BlogPost).count() == 0

    def test_delete_missing(self, db_session):
        with pytest.raises(NotFoundError):
            PostService.delete_post(db_session, uuid4())


class TestPostCollection:
    """Test dashboard stats derived from the in-memory collection."""

    def test_stats(self, db_session):
        make_post(db_session, slug="a", published=True)
        make_post(db_session, slug="b")
        make_post(db_session, slug="c")

        stats = PostService.load_collection(db_session).stats()

        assert (stats.total, stats.published, stats.drafts) == (3, 1, 2)

    def test_stats_follow_mutations(self, db_session):
        first = make_post(db_session, slug="a")
        collection = PostService.load_collection(db_session)

        second = make_post(db_session, slug="b", published=True)
        collection.add(second)
        assert collection.stats().published == 1

        collection.replace(PostService.toggle_published(db_session, first.id))
        assert collection.stats().published == 2

        PostService.delete_post(db_session, second.id)
        collection.remove(second.id)
        stats = collection.stats()
        assert (stats.total, stats.published, stats.drafts) == (1, 1, 0)

    def test_empty(self):
        stats = PostCollection([]).stats()

        assert (stats.total, stats.published, stats.drafts) == (0, 0, 0)

    def test_list_newest_first(self, db_session):
        make_post(db_session, slug="older")
        make_post(db_session, slug="newer")

        slugs = [post.slug for post in PostService.list_posts(db_session)]

        assert slugs == ["newer", "older"]
