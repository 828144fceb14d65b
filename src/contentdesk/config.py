"""Configuration for contentdesk.

Values come from four layers, later ones winning: model defaults, a
``.contentdesk.toml`` file, environment variables, and CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from contentdesk.integrations.ghost import GhostConfig
from contentdesk.registry.columns import DEFAULT_VISIBLE, module_flags_from
from contentdesk.registry.pipeline import DEFAULT_PAGE_SIZE, SortField

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".contentdesk.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "contentdesk",
]
GLOBAL_CONFIG = Path.home() / ".config" / "contentdesk" / "config.toml"
DEFAULT_SITE = "default"


class StoreConfig(BaseModel):
    """[store] section."""

    directory: str = "."


class ViewConfig(BaseModel):
    """[view] section."""

    page_size: int = DEFAULT_PAGE_SIZE
    sort_field: SortField = SortField.CREATED_AT
    sort_ascending: bool = False

    @field_validator("page_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("page_size must be positive")
        return value


class GhostSite(BaseModel):
    """Connection details for one Ghost site."""

    url: str = ""
    admin_api_key: str = ""

    def inherit(self, fallback: GhostSite) -> GhostSite:
        """Fill blank values from ``fallback``."""
        return GhostSite(
            url=self.url or fallback.url,
            admin_api_key=self.admin_api_key or fallback.admin_api_key,
        )


_GHOST_KEYS = frozenset({"default", "url", "admin_api_key", "targets"})


class GhostSectionConfig(GhostSite):
    """[ghost] section.

    Holds either one site, given by ``url`` and ``admin_api_key`` at the
    top level, or one ``[ghost.<site>]`` table per site::

        [ghost]
        default = "shop"
        admin_api_key = "id:secret"

        [ghost.shop]
        url = "https://shop-blog.example"

        [ghost.docs]
        url = "https://docs.example"
        admin_api_key = "other:secret"

    Site tables inherit whatever they leave blank from the top level.
    ``default`` names the site used when none is asked for.
    """

    default: str = ""
    targets: dict[str, GhostSite] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_site_tables(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        sites = {
            key: value
            for key, value in data.items()
            if key not in _GHOST_KEYS and isinstance(value, dict)
        }
        if not sites:
            return data
        rest = {key: value for key, value in data.items() if key not in sites}
        rest["targets"] = {**(rest.get("targets") or {}), **sites}
        return rest

    @property
    def target_names(self) -> list[str]:
        return list(self.targets)

    def get_target(self, name: str | None = None) -> GhostSite:
        """Connection details for ``name`` (or the default site).

        An unknown or empty name yields the top-level values.
        """
        top_level = GhostSite(url=self.url, admin_api_key=self.admin_api_key)
        site = self.targets.get(name or self.default)
        return top_level if site is None else site.inherit(top_level)


class ModulesConfig(BaseModel):
    """[modules] section — feature modules that unlock column groups."""

    enabled: list[str] = Field(default_factory=list)


class ColumnsConfig(BaseModel):
    """[columns] section — initial visible set before any saved layout."""

    visible: list[str] = Field(default_factory=lambda: list(DEFAULT_VISIBLE))


class LLMConfig(BaseModel):
    """[llm] section."""

    model: str | None = None
    timeout: int = 120


class ContentDeskConfig(BaseModel):
    """Top-level configuration model."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)
    ghost: GhostSectionConfig = Field(default_factory=GhostSectionConfig)
    modules: ModulesConfig = Field(default_factory=ModulesConfig)
    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)

    @property
    def store_path(self) -> Path:
        return Path(self.store.directory).expanduser()

    def resolve_site(self, site: str | None = None) -> str:
        """The site id in effect: explicit, else the default Ghost target."""
        return site or self.ghost.default or DEFAULT_SITE

    def module_flags(self) -> dict[str, bool]:
        return module_flags_from(self.modules.enabled)

    def to_ghost_config(self, target: str | None = None) -> GhostConfig:
        site = self.ghost.get_target(target)
        return GhostConfig(url=site.url, admin_api_key=site.admin_api_key)


# ── Loading ─────────────────────────────────────────────────────

_CLI_FIELDS: dict[str, tuple[str, str]] = {
    "store_directory": ("store", "directory"),
    "view_page_size": ("view", "page_size"),
    "view_sort_field": ("view", "sort_field"),
    "view_sort_ascending": ("view", "sort_ascending"),
    "ghost_url": ("ghost", "url"),
    "ghost_key": ("ghost", "admin_api_key"),
    "modules_enabled": ("modules", "enabled"),
    "model": ("llm", "model"),
}

_ENV_FIELDS: dict[str, tuple[str, str]] = {
    "CONTENTDESK_STORE_DIR": ("store", "directory"),
    "CONTENTDESK_MODEL": ("llm", "model"),
    "GHOST_URL": ("ghost", "url"),
    "GHOST_ADMIN_API_KEY": ("ghost", "admin_api_key"),
}


def load_config(path: str | Path | None = None) -> ContentDeskConfig:
    """Build the effective configuration.

    The file read is ``path`` when given; otherwise the first existing
    ``.contentdesk.toml`` in the working directory or
    ``~/.config/contentdesk``, then ``~/.config/contentdesk/config.toml``.
    Environment variables are applied on top.
    """
    source = _find_config_file(path)
    data = _read_toml(source) if source is not None else {}
    if data:
        logger.info("Loaded config from %s", source)
    return _apply_env_vars(ContentDeskConfig.model_validate(data))


def merge_cli_overrides(config: ContentDeskConfig, **cli_kwargs: object) -> ContentDeskConfig:
    """Apply the CLI flags that were actually given on top of ``config``.

    Keys name ``<section>_<field>`` (``store_directory``, ``view_page_size``);
    ``None`` means the flag was not passed.

    Raises:
        pydantic.ValidationError: If an override is out of range.
    """
    updates: dict[tuple[str, str], object] = {}
    for key, value in cli_kwargs.items():
        if value is None:
            continue
        target = _CLI_FIELDS.get(key)
        if target is None:
            logger.debug("Ignoring unknown CLI override %s", key)
            continue
        updates[target] = value
    return _overlay(config, updates)


def _find_config_file(path: str | Path | None) -> Path | None:
    if path is not None:
        explicit = Path(path)
        if explicit.exists():
            return explicit
        logger.warning("Config file not found: %s", explicit)
        return None
    candidates = [directory / CONFIG_FILENAME for directory in CONFIG_SEARCH_PATHS]
    candidates.append(GLOBAL_CONFIG)
    return next((candidate for candidate in candidates if candidate.exists()), None)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _overlay(
    config: ContentDeskConfig, updates: dict[tuple[str, str], object]
) -> ContentDeskConfig:
    if not updates:
        return config
    data = config.model_dump()
    for (section, name), value in updates.items():
        data[section][name] = value
    return ContentDeskConfig.model_validate(data)


def _apply_env_vars(config: ContentDeskConfig) -> ContentDeskConfig:
    updates: dict[tuple[str, str], object] = {
        target: os.environ[var] for var, target in _ENV_FIELDS.items() if var in os.environ
    }
    modules = os.environ.get("CONTENTDESK_MODULES")
    if modules is not None:
        updates[("modules", "enabled")] = [m.strip() for m in modules.split(",") if m.strip()]
    config = _overlay(config, updates)

    # GHOST_<SITE>_URL / GHOST_<SITE>_ADMIN_API_KEY, hyphens become underscores
    sites: dict[str, GhostSite] = {}
    for name, site in config.ghost.targets.items():
        prefix = f"GHOST_{name.upper().replace('-', '_')}_"
        found = {
            field: os.environ[prefix + suffix]
            for suffix, field in (("URL", "url"), ("ADMIN_API_KEY", "admin_api_key"))
            if prefix + suffix in os.environ
        }
        if found:
            sites[name] = site.model_copy(update=found)
    if not sites:
        return config
    ghost = config.ghost.model_copy(update={"targets": {**config.ghost.targets, **sites}})
    return config.model_copy(update={"ghost": ghost})
