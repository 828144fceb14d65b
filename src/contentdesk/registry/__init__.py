"""Unified content registry.

Merges remote CMS posts and locally authored articles into one
ContentItem snapshot, with filtering, an uncommitted edit buffer,
selection, bulk execution and column configuration layered on top.
"""

from contentdesk.registry.models import (
    ContentItem,
    ItemStatus,
    LocalArticle,
    NormalizationResult,
    Provenance,
    RemotePost,
    make_item_id,
    parse_item_id,
)
from contentdesk.registry.signals import Invalidation, InvalidationSignal
from contentdesk.registry.normalizer import normalize_local, normalize_remote, normalize_sources
from contentdesk.registry.registry import ContentRegistry
from contentdesk.registry.pipeline import (
    FilterCriteria,
    Page,
    SortField,
    SourceFilter,
    StatusTab,
    run_pipeline,
)
from contentdesk.registry.edit_buffer import EDITABLE_FIELDS, CommitResult, EditBuffer
from contentdesk.registry.selection import SelectionScope, SelectionSet
from contentdesk.registry.bulk import (
    BulkAction,
    BulkExecutor,
    BulkFailure,
    BulkProgress,
    BulkResult,
    PreconditionPolicy,
)
from contentdesk.registry.columns import Column, ColumnConfig, available_columns
from contentdesk.registry.view import ContentView

__all__ = [
    "BulkAction",
    "BulkExecutor",
    "BulkFailure",
    "BulkProgress",
    "BulkResult",
    "Column",
    "ColumnConfig",
    "CommitResult",
    "ContentItem",
    "ContentRegistry",
    "ContentView",
    "EDITABLE_FIELDS",
    "EditBuffer",
    "FilterCriteria",
    "Invalidation",
    "InvalidationSignal",
    "ItemStatus",
    "LocalArticle",
    "NormalizationResult",
    "Page",
    "PreconditionPolicy",
    "Provenance",
    "RemotePost",
    "SelectionScope",
    "SelectionSet",
    "SortField",
    "SourceFilter",
    "StatusTab",
    "available_columns",
    "make_item_id",
    "normalize_local",
    "normalize_remote",
    "normalize_sources",
    "parse_item_id",
    "run_pipeline",
]
