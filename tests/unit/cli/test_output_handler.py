"""Unit tests for cli.output module (OutputHandler)."""

import pytest
from rich.console import Console
from rich.tree import Tree

from src.cli.models import SyncSummary
from src.cli.output import OutputHandler


def make_handler(verbosity=0):
    console = Console(record=True, width=120, no_color=True)
    return OutputHandler(verbosity=verbosity, console=console), console


class TestMessages:
    """Test cases for message helpers."""

    def test_success_error_warning(self):
        handler, console = make_handler()

        handler.success("done")
        handler.error("broken")
        handler.warning("careful")

        text = console.export_text()
        assert "✓ done" in text
        assert "✗ broken" in text
        assert "⚠ careful" in text

    @pytest.mark.parametrize("verbosity,shows_info,shows_debug", [
        (0, False, False),
        (1, True, False),
        (2, True, True),
    ])
    def test_verbosity(self, verbosity, shows_info, shows_debug):
        handler, console = make_handler(verbosity)

        handler.info("info line")
        handler.debug("debug line")

        text = console.export_text()
        assert ("info line" in text) is shows_info
        assert ("debug line" in text) is shows_debug

    def test_print_ignores_markup(self):
        handler, console = make_handler()
        handler.print("[bold]literal[/bold]")
        assert "[bold]literal[/bold]" in console.export_text()


class TestTablesAndTrees:
    """Test cases for print_table and print_tree."""

    def test_table_renders_none_as_dash(self):
        handler, console = make_handler()

        handler.print_table("Links", ["Slug", "Local ID"], [["handbook", None], ["tools", 4]])

        text = console.export_text()
        assert "Links" in text
        assert "handbook" in text
        assert "-" in text
        assert "4" in text

    def test_tree(self):
        handler, console = make_handler()
        tree = Tree("Notion pages")
        tree.add("Handbook").add("Onboarding")

        handler.print_tree(tree)

        text = console.export_text()
        assert "Handbook" in text
        assert "Onboarding" in text


class TestPrintSummary:
    """Test cases for print_summary."""

    def test_success(self):
        handler, console = make_handler()
        handler.print_summary(SyncSummary(synced_count=3))

        text = console.export_text()
        assert "Synced: 3 page(s)" in text
        assert "Sync completed successfully" in text

    def test_partial(self):
        handler, console = make_handler()
        handler.print_summary(SyncSummary(synced_count=1, failed_count=1, errors={"abc": "Page [abc] not found"}))

        text = console.export_text()
        assert "Failed: 1 page(s)" in text
        assert "abc: Page [abc] not found" in text
        assert "Sync completed with errors" in text

    def test_all_failed(self):
        handler, console = make_handler()
        handler.print_summary(SyncSummary(failed_count=2, errors={"a": "x", "b": "y"}))
        assert "Sync failed" in console.export_text()

    def test_nothing_to_sync(self):
        handler, console = make_handler()
        handler.print_summary(SyncSummary())
        assert "No pages to sync" in console.export_text()
