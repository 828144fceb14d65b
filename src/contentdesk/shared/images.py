"""Cover image generation with Google Gemini via the google-genai SDK."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from google import genai
from google.genai import types

from contentdesk.errors import BackendError
from contentdesk.registry.models import ContentItem

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-pro-image-preview"
COVER_ASPECT_RATIO = "16:9"

_NO_TEXT = "No text, no logos, no UI elements. -- "

# Visual registers for covers; "editorial" suits most blog posts.
STYLE_PREFIXES: dict[str, str] = {
    "editorial": (
        "Clean editorial photograph. Soft natural light, balanced neutral "
        "palette. 50mm lens at f/4, subject centred with room for a headline "
        "crop. " + _NO_TEXT
    ),
    "product": (
        "Commercial product photograph. Even studio lighting on a seamless "
        "backdrop, crisp detail, gentle shadow under the subject. " + _NO_TEXT
    ),
    "illustration": (
        "Flat vector illustration. Limited palette of three or four colours, "
        "simple geometric shapes, generous negative space. " + _NO_TEXT
    ),
}

DEFAULT_STYLE = "editorial"


class ImageGenerationError(BackendError):
    """Gemini produced no usable image."""


def cover_prompt(item: ContentItem) -> str:
    """Describe a cover for ``item`` from its title and focus keyword.

    Raises:
        ImageGenerationError: If the item has neither.
    """
    title = (item.title or "").strip()
    keyword = (item.keyword or "").strip()
    if not title and not keyword:
        raise ImageGenerationError(f"{item.id} has no title or keyword to illustrate")
    if not title:
        return f"A blog cover image about {keyword}."
    prompt = f'A blog cover image for the article "{title}".'
    if keyword and keyword.lower() not in title.lower():
        prompt += f" The image should evoke {keyword}."
    return prompt


class ImageGenerator:
    """Generate cover images through Gemini.

    Reads ``GOOGLE_AI_API_KEY`` for the key and ``IMAGE_MODEL`` for the
    model unless one is passed in.
    """

    def __init__(self, model: str | None = None, style: str | None = None) -> None:
        self.model = model or os.environ.get("IMAGE_MODEL", DEFAULT_MODEL)
        self.style = style or DEFAULT_STYLE
        self._client: genai.Client | None = None

    def is_configured(self) -> bool:
        return bool(os.environ.get("GOOGLE_AI_API_KEY"))

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=os.environ["GOOGLE_AI_API_KEY"])
        return self._client

    def generate(
        self,
        prompt: str,
        *,
        output_path: Path,
        aspect_ratio: str = COVER_ASPECT_RATIO,
        style: str | None = None,
    ) -> Path:
        """Generate an image for ``prompt`` and write it to ``output_path``.

        ``style`` picks a prefix from ``STYLE_PREFIXES``; unknown names
        fall back to the generator's own style.

        Raises:
            ImageGenerationError: If the key is missing, the API call fails,
                or the response carries no image.
        """
        if not self.is_configured():
            raise ImageGenerationError("GOOGLE_AI_API_KEY is not set")

        prefix = STYLE_PREFIXES.get(style or "", STYLE_PREFIXES.get(self.style, ""))
        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=prefix + prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                    image_config=types.ImageConfig(aspect_ratio=aspect_ratio, image_size="2K"),
                ),
            )
        except Exception as exc:
            raise ImageGenerationError(f"Image generation failed: {exc}") from exc

        for part in response.parts or []:
            if part.inline_data is not None:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                part.as_image().save(str(output_path))
                logger.info("Saved generated image to %s", output_path)
                return output_path

        raise ImageGenerationError(f"No image data in response for prompt: {prompt[:80]}")
