"""Column configuration for the content table.

The catalogue is gated by feature modules: optional column groups are
inserted at fixed points relative to the required ``title`` and
``actions`` columns.  Order and visibility are kept apart: ``reorder``
only moves ids, ``toggle`` only changes membership.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

COLUMNS_FILENAME = ".contentdesk-columns.json"


class Column(BaseModel):
    """One attribute of ContentItem that can be shown as a column."""

    id: str
    label: str
    required: bool = False
    group: str = "core"


# Feature module that must be enabled for a column group to be offered.
GROUP_MODULES: dict[str, str] = {
    "seo_meta": "rankmath-bridge",
    "cover": "nana-banana",
    "ai_scores": "content-ai",
}

_LEADING = [Column(id="title", label="Title", required=True)]

_CORE = [
    Column(id="source", label="Source"),
    Column(id="keyword", label="Keyword"),
    Column(id="seo_score", label="SEO Score"),
    Column(id="word_count", label="Words"),
]

# Inserted right after the core block.
_AI_SCORES = [
    Column(id="preliminary_seo_score", label="Prelim. SEO", group="ai_scores"),
    Column(id="readability", label="Readability", group="ai_scores"),
]

_SEO_META = [
    Column(id="links", label="Links", group="seo_meta"),
    Column(id="images", label="Images", group="seo_meta"),
    Column(id="seo_title", label="SEO Title", group="seo_meta"),
    Column(id="seo_description", label="Meta Desc", group="seo_meta"),
    Column(id="robots", label="Robots", group="seo_meta"),
    Column(id="schema_type", label="Schema", group="seo_meta"),
    Column(id="canonical", label="Canonical", group="seo_meta"),
]

_TRAILING_CORE = [
    Column(id="published_at", label="Published"),
    Column(id="status", label="Status"),
]

# Inserted immediately before the required ``actions`` column.
_COVER = [Column(id="cover", label="Cover", group="cover")]

_ACTIONS = [Column(id="actions", label="Actions", required=True)]

COLUMN_CATALOGUE: list[Column] = (
    _LEADING + _CORE + _AI_SCORES + _SEO_META + _TRAILING_CORE + _COVER + _ACTIONS
)

DEFAULT_VISIBLE: list[str] = [
    "title",
    "source",
    "keyword",
    "seo_score",
    "readability",
    "word_count",
    "links",
    "images",
    "status",
    "actions",
]


def is_group_available(group: str, module_flags: dict[str, bool]) -> bool:
    module = GROUP_MODULES.get(group)
    return module is None or module_flags.get(module, False)


def available_columns(module_flags: dict[str, bool]) -> list[Column]:
    """The column catalogue with disabled module groups removed."""
    groups: list[list[Column]] = [_LEADING, _CORE]
    if is_group_available("ai_scores", module_flags):
        groups.append(_AI_SCORES)
    if is_group_available("seo_meta", module_flags):
        groups.append(_SEO_META)
    groups.append(_TRAILING_CORE)
    if is_group_available("cover", module_flags):
        groups.append(_COVER)
    groups.append(_ACTIONS)
    return [column.model_copy() for group in groups for column in group]


def get_column(column_id: str) -> Column:
    for column in COLUMN_CATALOGUE:
        if column.id == column_id:
            return column
    raise KeyError(column_id)


class ColumnConfig(BaseModel):
    """User column layout: full order of every column plus the visible set.

    ``order`` lists every catalogue column so a hidden column keeps its
    place when shown again.
    """

    order: list[str] = Field(default_factory=lambda: [c.id for c in COLUMN_CATALOGUE])
    visible: list[str] = Field(default_factory=lambda: list(DEFAULT_VISIBLE))

    def model_post_init(self, __context: object) -> None:
        known = {c.id for c in COLUMN_CATALOGUE}
        order = [cid for cid in dict.fromkeys(self.order) if cid in known]
        order += [c.id for c in COLUMN_CATALOGUE if c.id not in order]
        self.order = order
        visible = {cid for cid in self.visible if cid in known}
        visible |= {c.id for c in COLUMN_CATALOGUE if c.required}
        self.visible = [cid for cid in self.order if cid in visible]

    def is_visible(self, column_id: str) -> bool:
        return column_id in self.visible

    def toggle(self, column_id: str) -> None:
        """Show or hide a column; required columns never hide.

        Raises KeyError for an unknown column id.
        """
        column = get_column(column_id)
        if column.required:
            return
        visible = set(self.visible)
        if column_id in visible:
            visible.discard(column_id)
        else:
            visible.add(column_id)
        self.visible = [cid for cid in self.order if cid in visible]

    def reorder(self, dragged_id: str, target_id: str) -> None:
        """Move ``dragged_id`` into ``target_id``'s position.

        Everything else keeps its relative order; membership never changes.
        """
        if dragged_id == target_id:
            return
        if dragged_id not in self.order:
            raise KeyError(dragged_id)
        if target_id not in self.order:
            raise KeyError(target_id)
        order = list(self.order)
        target_index = order.index(target_id)
        order.remove(dragged_id)
        order.insert(target_index, dragged_id)
        self.order = order
        visible = set(self.visible)
        self.visible = [cid for cid in order if cid in visible]

    def visible_columns(self, module_flags: dict[str, bool]) -> list[Column]:
        """Columns marked visible whose group is currently available, in order."""
        available = {c.id: c for c in available_columns(module_flags)}
        return [available[cid] for cid in self.visible if cid in available]

    def visible_ids(self, module_flags: dict[str, bool]) -> list[str]:
        return [c.id for c in self.visible_columns(module_flags)]


def module_flags_from(enabled: Iterable[str]) -> dict[str, bool]:
    """Build module flags from a list of enabled module names."""
    enabled_set = set(enabled)
    return {module: module in enabled_set for module in GROUP_MODULES.values()}


def load_column_config(
    directory: Path, default_visible: Iterable[str] | None = None
) -> ColumnConfig:
    """Load the saved column layout, or a default one.

    ``default_visible`` seeds the visible set when nothing is saved yet.
    """
    path = directory / COLUMNS_FILENAME
    default = (
        ColumnConfig(visible=list(default_visible))
        if default_visible is not None
        else ColumnConfig()
    )
    if not path.exists():
        return default
    try:
        return ColumnConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError):
        logger.warning("Corrupt column config at %s, using defaults", path)
        return default


def save_column_config(config: ColumnConfig, directory: Path) -> None:
    path = directory / COLUMNS_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
