"""
Post write-and-announce handling plus the plain CRUD operations.

A create moves RECEIVED -> VALIDATED -> WRITTEN -> ANNOUNCED, or ends in
REJECTED (ValidationFailed) or WRITE_FAILED (StoreError). The announcement is
published only after the write, and its outcome never reaches the client: a
stored post may have no announcement at all.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from .broker import Publisher
from .errors import StoreError
from .metrics import metrics_registry
from .models import Announcement, Post, PostIn
from .sql import (
    columns,
    delete_statement,
    insert_statement,
    select_all_statement,
    update_statement,
)
from .store import StoreHandle


class PostService:
    """Request-time operations over the shared store handle and publisher."""

    def __init__(
        self,
        store: StoreHandle,
        publisher: Optional[Publisher] = None,
        *,
        announcing: bool = True,
    ):
        self.store = store
        self.publisher = publisher
        self.announcing = announcing

    async def _run(self, operation: str, coro):
        try:
            result = await coro
        except StoreError:
            metrics_registry.store_statements_total.labels(
                operation=operation, outcome="error"
            ).inc()
            raise
        metrics_registry.store_statements_total.labels(operation=operation, outcome="ok").inc()
        return result

    async def create(self, post: PostIn) -> Optional[Announcement]:
        """Validate and write a post.

        Returns the announcement to publish once the client has its response,
        or None in the simple variant.
        """
        post.require(self.announcing)
        cols = columns(self.announcing)
        params = post.params(self.announcing)
        await self._run("create", self.store.execute(insert_statement(cols), params))
        if not self.announcing:
            return None
        return Announcement.from_post(post)

    async def announce(self, announcement: Announcement) -> bool:
        if self.publisher is None:
            return False
        return await self.publisher.publish(announcement.to_bytes())

    async def list_all(self) -> list[Post]:
        rows = await self._run("list", self.store.query(select_all_statement()))
        return [Post.model_validate(r) for r in rows]

    async def update(self, post_id: int, post: PostIn) -> int:
        post.require(self.announcing)
        cols = columns(self.announcing)
        params = {**post.params(self.announcing), "id": post_id}
        n = await self._run("update", self.store.execute(update_statement(cols), params))
        if n == 0:
            logger.debug(f"Update of post {post_id} matched no rows")
        return n

    async def delete(self, post_id: int) -> int:
        n = await self._run("delete", self.store.execute(delete_statement(), {"id": post_id}))
        if n == 0:
            logger.debug(f"Delete of post {post_id} matched no rows")
        return n
