"""
Pydantic data models for the post service.

PostIn is the request body for create/update, Post is a stored row and
Announcement is the message published on post creation.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt

from .errors import ValidationFailed


class PostIn(BaseModel):
    """Create/update request body."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    content: Optional[str] = None
    # "user_id" is the body key older clients still send
    author_id: Optional[StrictInt] = Field(
        default=None,
        validation_alias=AliasChoices("authorId", "user_id", "author_id"),
    )

    def require(self, announcing: bool) -> "PostIn":
        """Raise ValidationFailed unless the fields the variant needs are present."""
        if announcing:
            if not self.title or not self.content or not self.author_id:
                raise ValidationFailed("Title, content and authorId are required")
        elif not self.title:
            raise ValidationFailed("Title is required")
        return self

    def params(self, announcing: bool) -> dict:
        out = {"title": self.title, "content": self.content}
        if announcing:
            out["author_id"] = self.author_id
        return out


class Post(BaseModel):
    """A row of the posts table."""

    id: int
    title: str
    content: Optional[str] = None
    author_id: Optional[int] = Field(default=None, serialization_alias="authorId")
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


@dataclass(frozen=True)
class Announcement:
    """Post-created message. Not persisted, no id, no schema version."""

    title: str
    content: Optional[str]
    author_id: Optional[int]

    @classmethod
    def from_post(cls, post: PostIn) -> "Announcement":
        return cls(title=post.title, content=post.content, author_id=post.author_id)

    def to_bytes(self) -> bytes:
        body = {"title": self.title, "content": self.content, "authorId": self.author_id}
        return json.dumps(body, separators=(",", ":")).encode("utf-8")
