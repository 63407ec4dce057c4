"""
Post service.

Stores posts in PostgreSQL and announces their creation on the RabbitMQ
queue ``post_created``.

Usage:
    from post_service import Bootstrap, create_app, get_settings

    service = await Bootstrap(get_settings()).start()
    app = create_app(service)
"""

__version__ = "1.0.0"

from .bootstrap import Bootstrap, RunningService  # noqa: E402
from .broker import Publisher, connect_broker  # noqa: E402
from .config import Settings, get_settings  # noqa: E402
from .models import Announcement, Post, PostIn  # noqa: E402
from .posts import PostService  # noqa: E402
from .service.app import create_app  # noqa: E402
from .store import StoreHandle, connect_store  # noqa: E402

__all__ = [
    "Bootstrap",
    "RunningService",
    "Publisher",
    "connect_broker",
    "Settings",
    "get_settings",
    "Announcement",
    "Post",
    "PostIn",
    "PostService",
    "create_app",
    "StoreHandle",
    "connect_store",
]
