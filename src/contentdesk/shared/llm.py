"""Claude helpers for drafting SEO copy.

``call_claude`` is the single entry point to the Anthropic API (keyed by
``ANTHROPIC_API_KEY``); ``generate_seo_text`` asks it for an SEO title
and meta description for one content item.
"""

from __future__ import annotations

import json
import logging
import os
import re

import anthropic
from pydantic import BaseModel, ValidationError

from contentdesk.errors import BackendError
from contentdesk.registry.models import ContentItem

logger = logging.getLogger(__name__)


class LLMError(BackendError):
    """A Claude call failed or answered with something unusable."""


# Short aliases accepted by --model and [llm] model.
MODEL_ALIASES: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-6",
    "opus": "claude-opus-4-6",
}
DEFAULT_MODEL = MODEL_ALIASES["haiku"]

SEO_TITLE_MAX = 60
SEO_DESCRIPTION_MAX = 160


def call_claude(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str | None = None,
    timeout: int = 120,
    max_tokens: int = 1024,
    label: str = "seo",
) -> str:
    """Send one system + user prompt pair and return the reply text.

    ``model`` may be an alias from ``MODEL_ALIASES`` or a full model id;
    ``label`` only tags log and error messages.

    Raises:
        LLMError: If no API key is set, the API call fails, or the reply
            has no text.
    """
    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
    if not api_key:
        raise LLMError("ANTHROPIC_API_KEY not set")

    model_id = MODEL_ALIASES.get(model, model) if model else DEFAULT_MODEL
    logger.debug("Claude request %s using %s", label, model_id)

    client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
    try:
        response = client.messages.create(
            model=model_id,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
    except anthropic.APIError as exc:
        raise LLMError(f"Claude request {label} failed: {exc}") from exc

    text = "".join(block.text for block in response.content if block.type == "text").strip()
    if not text:
        raise LLMError(f"Claude request {label} returned an empty reply")
    return text


_FENCED = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def strip_json_fences(text: str) -> str:
    """Reduce a model reply to the JSON it carries.

    Prefers the contents of a fenced code block, then the outermost
    ``{...}`` span; anything else comes back unchanged.
    """
    text = text.strip()
    fenced = _FENCED.search(text)
    if fenced is not None:
        return fenced.group(1).strip()
    first, last = text.find("{"), text.rfind("}")
    if 0 <= first < last:
        return text[first : last + 1]
    return text


# ---------------------------------------------------------------------------
# SEO text
# ---------------------------------------------------------------------------


class SeoText(BaseModel):
    """Drafted SEO fields for one item."""

    seo_title: str
    seo_description: str

    def as_fields(self) -> dict[str, str]:
        return {
            "seo_title": self.seo_title[:SEO_TITLE_MAX].strip(),
            "seo_description": self.seo_description[:SEO_DESCRIPTION_MAX].strip(),
        }


_SEO_SYSTEM_PROMPT = f"""\
You write search-engine metadata for blog posts.
Reply with a single JSON object and nothing else:
{{"seo_title": "...", "seo_description": "..."}}
The title is at most {SEO_TITLE_MAX} characters and leads with the focus keyword.
The description is at most {SEO_DESCRIPTION_MAX} characters, plain text, no quotes."""


def _seo_prompt(item: ContentItem) -> str:
    lines = [f"Title: {item.title or '(untitled)'}"]
    if item.keyword:
        lines.append(f"Focus keyword: {item.keyword}")
    if item.seo_title:
        lines.append(f"Current SEO title: {item.seo_title}")
    if item.seo_description:
        lines.append(f"Current meta description: {item.seo_description}")
    if item.url:
        lines.append(f"URL: {item.url}")
    return "\n".join(lines)


def generate_seo_text(
    item: ContentItem,
    *,
    model: str | None = None,
    timeout: int = 120,
) -> SeoText:
    """Ask Claude for an SEO title and meta description.

    Raises:
        LLMError: If the call fails or the reply is not the expected JSON.
    """
    raw = call_claude(
        _SEO_SYSTEM_PROMPT,
        _seo_prompt(item),
        model=model,
        timeout=timeout,
        label=f"seo:{item.id}",
    )
    try:
        return SeoText.model_validate(json.loads(strip_json_fences(raw)))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise LLMError(f"Unparseable SEO reply for {item.id}: {raw[:200]}") from exc
