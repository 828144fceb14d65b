"""Ghost CMS integration — config and Admin API client.

The remote system of record.  Posts come back as plain dicts and are
mapped onto the registry's remote record shape by ``ghost_post_to_record``.
"""

from __future__ import annotations

import json
import logging
import mimetypes
import os
import re
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import jwt
from pydantic import BaseModel

from contentdesk.errors import BackendError

logger = logging.getLogger(__name__)

# Ghost post statuses the Admin API accepts on write.
WRITABLE_STATUSES = frozenset({"draft", "published"})

_LINK_RE = re.compile(r"<a\s[^>]*href=[\"']([^\"']+)[\"']", re.IGNORECASE)
_IMG_RE = re.compile(r"<img\s[^>]*>", re.IGNORECASE)
_ALT_RE = re.compile(r"\salt=[\"'][^\"']+[\"']", re.IGNORECASE)


class GhostAPIError(BackendError):
    """A Ghost Admin API call failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


ADMIN_API_PATH = "/ghost/api/admin"
TOKEN_TTL_SECONDS = 300
_UPLOAD_BOUNDARY = "----ContentDeskUploadBoundary"


class GhostConfig(BaseModel):
    """Connection settings for one Ghost site."""

    url: str = ""
    admin_api_key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.url) and bool(self.admin_api_key)

    @classmethod
    def from_env(cls) -> GhostConfig:
        """Settings from ``GHOST_URL`` and ``GHOST_ADMIN_API_KEY``."""
        env = os.environ
        return cls(url=env.get("GHOST_URL", ""), admin_api_key=env.get("GHOST_ADMIN_API_KEY", ""))


def _multipart_body(field: str, file_path: Path) -> bytes:
    content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    head = (
        f"--{_UPLOAD_BOUNDARY}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{file_path.name}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    )
    tail = f"\r\n--{_UPLOAD_BOUNDARY}--\r\n"
    return head.encode() + file_path.read_bytes() + tail.encode()


class GhostAPIClient:
    """Blocking Ghost Admin API client over urllib.

    Each request carries a short-lived JWT signed with the admin key.
    Async callers run these methods in a worker thread.
    """

    def __init__(self, config: GhostConfig) -> None:
        if not config.is_configured:
            raise GhostAPIError("Ghost is not configured (url and admin_api_key required)")
        self.config = config
        self.base_url = config.url.rstrip("/")

    def _generate_token(self) -> str:
        key_id, _, secret_hex = self.config.admin_api_key.partition(":")
        try:
            if not key_id or not secret_hex:
                raise ValueError("missing part")
            secret = bytes.fromhex(secret_hex)
        except ValueError as exc:
            raise GhostAPIError("Admin API key must look like '<id>:<hex secret>'") from exc
        now = int(time.time())
        claims = {"iat": now, "exp": now + TOKEN_TTL_SECONDS, "aud": "/admin/"}
        return jwt.encode(claims, secret, algorithm="HS256", headers={"kid": key_id})

    def _call(
        self, method: str, path: str, body: bytes | None, content_type: str
    ) -> dict[str, Any]:
        req = urllib.request.Request(
            self.base_url + ADMIN_API_PATH + path,
            data=body,
            method=method,
            headers={
                "Authorization": "Ghost " + self._generate_token(),
                "Content-Type": content_type,
            },
        )
        logger.debug("Ghost %s %s", method, path)
        try:
            with urllib.request.urlopen(req) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")[:500]
            raise GhostAPIError(
                f"Ghost API {method} {path} failed ({exc.code}): {detail}", status=exc.code
            ) from exc
        except urllib.error.URLError as exc:
            raise GhostAPIError(f"Ghost API unreachable: {exc.reason}") from exc
        # DELETE answers 204 with no body.
        return json.loads(raw) if raw.strip() else {}

    def _request(self, method: str, path: str, data: dict | None = None) -> dict[str, Any]:
        body = None if data is None else json.dumps(data).encode("utf-8")
        return self._call(method, path, body, "application/json")

    def _request_multipart(self, path: str, file_path: Path, field: str = "file") -> dict:
        body = _multipart_body(field, file_path)
        return self._call(
            "POST", path, body, f"multipart/form-data; boundary={_UPLOAD_BOUNDARY}"
        )

    @staticmethod
    def markdown_to_mobiledoc(markdown: str) -> str:
        """Serialize markdown as a single-card mobiledoc document."""
        return json.dumps(
            {
                "version": "0.3.1",
                "ghostVersion": "4.0",
                "atoms": [],
                "markups": [],
                "cards": [["markdown", {"markdown": markdown}]],
                "sections": [[10, 0]],
            }
        )

    # ── Posts ────────────────────────────────────────────────────

    def list_posts(self, *, limit: str = "all") -> list[dict[str, Any]]:
        """Fetch every post (all statuses) with plaintext and HTML bodies."""
        result = self._request("GET", f"/posts/?limit={limit}&formats=html,plaintext&include=tags")
        return list(result.get("posts", []))

    def get_post(self, post_id: str) -> dict[str, Any]:
        return self._request("GET", f"/posts/{post_id}/")["posts"][0]

    def create_post(
        self,
        title: str,
        markdown: str,
        tags: list[str] | None = None,
        status: str = "draft",
        feature_image: str | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        """Create a post from markdown and return Ghost's copy of it.

        ``tags`` are tag names; the first becomes the primary tag.  Extra
        keyword fields (``slug``, ``meta_title``, ...) are sent as given,
        except those that are None.
        """
        post: dict[str, Any] = {
            "title": title,
            "status": status,
            "mobiledoc": self.markdown_to_mobiledoc(markdown),
        }
        if tags:
            post["tags"] = [{"name": name} for name in tags]
        if feature_image:
            post["feature_image"] = feature_image
        post.update((key, value) for key, value in fields.items() if value is not None)
        return self._request("POST", "/posts/", {"posts": [post]})["posts"][0]

    def update_post(self, post_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Update fields of an existing post.

        Ghost rejects edits without the post's current ``updated_at``, so
        it is fetched first unless the caller passed one.
        """
        data = dict(fields)
        if "updated_at" not in data:
            data["updated_at"] = self.get_post(post_id)["updated_at"]
        return self._request("PUT", f"/posts/{post_id}/", {"posts": [data]})["posts"][0]

    def delete_post(self, post_id: str) -> None:
        self._request("DELETE", f"/posts/{post_id}/")

    def upload_image(self, file_path: Path) -> str:
        """Store an image in Ghost's media library; returns its public URL.

        Raises:
            GhostAPIError: If the upload fails or returns no URL.
        """
        result = self._request_multipart("/images/upload/", file_path)
        images = result.get("images") or []
        if not images or not images[0].get("url"):
            raise GhostAPIError(f"Image upload for '{file_path}' returned no URL")
        return images[0]["url"]

    def set_feature_image(self, post_id: str, file_path: Path) -> dict[str, Any]:
        """Upload an image and attach it as a post's feature image."""
        return self.update_post(post_id, {"feature_image": self.upload_image(file_path)})


# ── Record mapping ───────────────────────────────────────────────


def _link_counts(html: str, site_url: str) -> tuple[int, int]:
    host = urlparse(site_url).netloc
    internal = external = 0
    for href in _LINK_RE.findall(html):
        netloc = urlparse(href).netloc
        if not netloc or netloc == host:
            internal += 1
        else:
            external += 1
    return internal, external


def ghost_post_to_record(post: dict[str, Any], site_url: str = "") -> dict[str, Any]:
    """Map a Ghost Admin API post onto the remote record shape.

    Word count and link/image statistics are derived from the post body
    when Ghost returned it.
    """
    record: dict[str, Any] = {
        "id": post.get("id"),
        "title": post.get("title"),
        "status": post.get("status"),
        "slug": post.get("slug"),
        "url": post.get("url"),
        "seo_title": post.get("meta_title"),
        "seo_description": post.get("meta_description"),
        "canonical_url": post.get("canonical_url"),
        "og_title": post.get("og_title"),
        "feature_image": post.get("feature_image"),
        "published_at": post.get("published_at"),
        "created_at": post.get("created_at"),
        "updated_at": post.get("updated_at"),
    }
    primary_tag = post.get("primary_tag")
    if isinstance(primary_tag, dict):
        record["focus_keyword"] = primary_tag.get("name")

    plaintext = post.get("plaintext")
    if plaintext:
        record["word_count"] = len(plaintext.split())

    html = post.get("html")
    if html:
        internal, external = _link_counts(html, site_url)
        images = _IMG_RE.findall(html)
        record["internal_links_count"] = internal
        record["external_links_count"] = external
        record["images_count"] = len(images)
        record["images_alt_count"] = sum(1 for tag in images if _ALT_RE.search(tag))
    return record
