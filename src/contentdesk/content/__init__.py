"""Local content domain — the JSON-backed store of authored articles."""

from contentdesk.content.store import STORE_FILENAME, ArticleStore

__all__ = [
    "ArticleStore",
    "STORE_FILENAME",
]
