"""Smoke tests for the CLI."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from contentdesk import __version__
from contentdesk.cli import app
from contentdesk.content.store import ArticleStore
from contentdesk.registry.columns import COLUMNS_FILENAME, load_column_config


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def store_dir(tmp_path: Path, monkeypatch) -> Path:
    """An empty store directory with no Ghost configured."""
    for var in (
        "GHOST_URL", "GHOST_ADMIN_API_KEY", "CONTENTDESK_STORE_DIR", "CONTENTDESK_MODULES",
        "GOOGLE_AI_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    directory = tmp_path / "store"
    directory.mkdir()
    return directory


def _invoke(runner: CliRunner, store_dir: Path, *args: str):
    base = ["--config", str(store_dir / "absent.toml"), "--store", str(store_dir)]
    return runner.invoke(app, [*base, *args])


def _add(runner: CliRunner, store_dir: Path, title: str, *extra: str) -> str:
    result = _invoke(runner, store_dir, "article", "add", "--title", title, *extra)
    assert result.exit_code == 0, result.output
    article = next(a for a in ArticleStore(store_dir).list() if a.title == title)
    return f"local-{article.id}"


class TestCLI:
    """Tests for the CLI entry point."""

    def test_main_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "bulk" in result.output

    def test_main_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"contentdesk {__version__}" in result.output


class TestArticleAdd:
    def test_creates_draft(self, runner: CliRunner, store_dir: Path, tmp_path: Path) -> None:
        body = tmp_path / "body.md"
        body.write_text("Walking boots for winter hikes", encoding="utf-8")
        item_id = _add(runner, store_dir, "Winter boots", "--keyword", "boots", "--body-file", str(body))

        article = ArticleStore(store_dir).get(item_id.removeprefix("local-"))
        assert article.site_id == "default"
        assert article.keyword == "boots"
        assert article.status == "draft"
        assert article.word_count == 5


class TestList:
    def test_empty_store(self, runner: CliRunner, store_dir: Path) -> None:
        result = _invoke(runner, store_dir, "list")
        assert result.exit_code == 0, result.output
        assert "No items match" in result.output

    def test_pagination_footer(self, runner: CliRunner, store_dir: Path) -> None:
        for n in range(3):
            _add(runner, store_dir, f"Post {n}")
        result = _invoke(runner, store_dir, "list", "--page-size", "2", "--page", "2")
        assert result.exit_code == 0, result.output
        assert "Showing 3-3 of 3 (page 2/2)" in result.output

    def test_tab_filter(self, runner: CliRunner, store_dir: Path) -> None:
        _add(runner, store_dir, "Only draft")
        result = _invoke(runner, store_dir, "list", "--tab", "published")
        assert result.exit_code == 0, result.output
        assert "No items match" in result.output


class TestColumns:
    def test_toggle_persists(self, runner: CliRunner, store_dir: Path) -> None:
        result = _invoke(runner, store_dir, "columns", "--toggle", "keyword")
        assert result.exit_code == 0, result.output
        assert (store_dir / COLUMNS_FILENAME).exists()
        assert not load_column_config(store_dir).is_visible("keyword")

    def test_move(self, runner: CliRunner, store_dir: Path) -> None:
        result = _invoke(runner, store_dir, "columns", "--move", "status", "--to", "source")
        assert result.exit_code == 0, result.output
        order = load_column_config(store_dir).order
        assert order.index("status") < order.index("source")

    def test_unknown_column(self, runner: CliRunner, store_dir: Path) -> None:
        result = _invoke(runner, store_dir, "columns", "--toggle", "bogus")
        assert result.exit_code == 1
        assert not (store_dir / COLUMNS_FILENAME).exists()

    def test_move_needs_target(self, runner: CliRunner, store_dir: Path) -> None:
        result = _invoke(runner, store_dir, "columns", "--move", "status")
        assert result.exit_code == 1


class TestEdit:
    def test_saves_local_field(self, runner: CliRunner, store_dir: Path) -> None:
        item_id = _add(runner, store_dir, "Editable")
        result = _invoke(runner, store_dir, "edit", item_id, "--seo-title", "Better title")
        assert result.exit_code == 0, result.output
        assert "Saved 1/1" in result.output
        article = ArticleStore(store_dir).get(item_id.removeprefix("local-"))
        assert article.seo_title == "Better title"

    def test_unknown_item(self, runner: CliRunner, store_dir: Path) -> None:
        result = _invoke(runner, store_dir, "edit", "local-missing", "--slug", "x")
        assert result.exit_code == 1

    def test_nothing_to_change(self, runner: CliRunner, store_dir: Path) -> None:
        result = _invoke(runner, store_dir, "edit", "local-x")
        assert result.exit_code == 1


class TestBulk:
    def test_status_change(self, runner: CliRunner, store_dir: Path) -> None:
        first = _add(runner, store_dir, "First")
        second = _add(runner, store_dir, "Second")
        result = _invoke(
            runner, store_dir, "bulk", "status", "pending", "--id", first, "--id", second,
            "--local-only",
        )
        assert result.exit_code == 0, result.output
        assert "2/2 succeeded" in result.output
        statuses = {a.status for a in ArticleStore(store_dir).list()}
        assert statuses == {"pending"}

    def test_repeated_id_stays_selected(self, runner: CliRunner, store_dir: Path) -> None:
        item_id = _add(runner, store_dir, "Twice")
        result = _invoke(
            runner, store_dir, "bulk", "status", "pending", "--id", item_id, "--id", item_id,
            "--local-only",
        )
        assert result.exit_code == 0, result.output
        assert "1/1 succeeded" in result.output
        assert ArticleStore(store_dir).list()[0].status == "pending"

    def test_requires_selection(self, runner: CliRunner, store_dir: Path) -> None:
        _add(runner, store_dir, "First")
        result = _invoke(runner, store_dir, "bulk", "status", "draft", "--local-only")
        assert result.exit_code == 1

    def test_publish_rejected_when_untitled(self, runner: CliRunner, store_dir: Path) -> None:
        _add(runner, store_dir, "Titled")
        untitled = _add(runner, store_dir, "")
        result = _invoke(runner, store_dir, "bulk", "publish", "--all-matching")
        assert result.exit_code == 1
        assert "Rejected" in result.output
        assert untitled in result.output
        assert all(a.status == "draft" for a in ArticleStore(store_dir).list())

    def test_publish_without_ghost_reports_failures(
        self, runner: CliRunner, store_dir: Path
    ) -> None:
        item_id = _add(runner, store_dir, "Lonely")
        result = _invoke(runner, store_dir, "bulk", "publish", "--id", item_id)
        assert result.exit_code == 1
        assert "0/1 succeeded" in result.output

    def test_delete_with_yes(self, runner: CliRunner, store_dir: Path) -> None:
        item_id = _add(runner, store_dir, "Doomed")
        result = _invoke(
            runner, store_dir, "bulk", "delete", "--id", item_id, "--local-only", "--yes"
        )
        assert result.exit_code == 0, result.output
        assert ArticleStore(store_dir).list() == []

    def test_delete_aborted(self, runner: CliRunner, store_dir: Path) -> None:
        item_id = _add(runner, store_dir, "Kept")
        result = runner.invoke(
            app,
            ["--store", str(store_dir), "bulk", "delete", "--id", item_id, "--local-only"],
            input="n\n",
        )
        assert result.exit_code == 1
        assert len(ArticleStore(store_dir).list()) == 1

    def test_cover_needs_image_key(self, runner: CliRunner, store_dir: Path) -> None:
        item_id = _add(runner, store_dir, "Needs art")
        result = _invoke(runner, store_dir, "bulk", "cover", "--id", item_id)
        assert result.exit_code == 1
        assert "GOOGLE_AI_API_KEY" in result.output

    def test_cover_unknown_style(self, runner: CliRunner, store_dir: Path, monkeypatch) -> None:
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "test-key")
        item_id = _add(runner, store_dir, "Needs art")
        result = _invoke(runner, store_dir, "bulk", "cover", "--id", item_id, "--style", "neon")
        assert result.exit_code == 1
        assert "unknown style" in result.output
