"""
Unit tests for request validation and the announcement payload.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from post_service.errors import ValidationFailed
from post_service.models import Announcement, Post, PostIn


class TestPostIn:
    def test_announcing_requires_all_fields(self):
        PostIn(title="t", content="c", authorId=7).require(announcing=True)

        for body in (
            {"content": "c", "authorId": 7},
            {"title": "", "content": "c", "authorId": 7},
            {"title": "t", "authorId": 7},
            {"title": "t", "content": "c"},
        ):
            with pytest.raises(ValidationFailed, match="required"):
                PostIn.model_validate(body).require(announcing=True)

    def test_simple_variant_only_requires_title(self):
        PostIn(title="t").require(announcing=False)
        with pytest.raises(ValidationFailed, match="Title is required"):
            PostIn(content="c").require(announcing=False)

    def test_legacy_user_id_key_accepted(self):
        post = PostIn.model_validate({"title": "t", "content": "c", "user_id": 3})
        assert post.author_id == 3

    def test_boolean_author_rejected(self):
        with pytest.raises(ValidationError):
            PostIn.model_validate({"title": "t", "content": "c", "authorId": True})
        with pytest.raises(ValidationError):
            PostIn.model_validate({"title": "t", "content": "c", "authorId": "7"})

    def test_params_per_variant(self):
        post = PostIn(title="t", content="c", authorId=7)
        assert post.params(announcing=True) == {"title": "t", "content": "c", "author_id": 7}
        assert post.params(announcing=False) == {"title": "t", "content": "c"}


def test_announcement_bytes():
    post = PostIn(title="t", content="c", authorId=7)
    assert Announcement.from_post(post).to_bytes() == b'{"title":"t","content":"c","authorId":7}'


def test_post_json_uses_camel_case():
    row = {
        "id": 1,
        "title": "t",
        "content": "c",
        "author_id": 7,
        "created_at": datetime(2025, 1, 1, 12, 0),
    }
    assert Post.model_validate(row).to_json() == {
        "id": 1,
        "title": "t",
        "content": "c",
        "authorId": 7,
        "createdAt": "2025-01-01T12:00:00",
    }


def test_post_json_without_author_column():
    row = {"id": 2, "title": "t", "content": None, "created_at": datetime(2025, 1, 1)}
    assert "authorId" not in Post.model_validate(row).to_json()
