"""Unit tests for hierarchy.menu_synchronizer module."""

import pytest

from src.hierarchy.menu_synchronizer import MenuSynchronizer
from src.hierarchy.models import HierarchyNode
from src.storage.models import LocalContent, MenuItemOrigin
from tests.fixtures.notion_pages import SITE_URL

MENU = "Notion Navigation"


@pytest.fixture
def synchronizer(navigation_store, content_store):
    return MenuSynchronizer(navigation_store, content_store)


@pytest.fixture
def pages(content_store):
    """Three local records: a root with two children."""
    return {
        title: content_store.create(LocalContent(title=title))
        for title in ("Handbook", "Onboarding", "Tools")
    }


def tree_for(pages, child_titles=("Onboarding", "Tools"), root_title="Handbook"):
    children = [
        HierarchyNode(local_id=pages[title], remote_id=title.lower(), title=title, order=order)
        for order, title in enumerate(child_titles)
    ]
    return HierarchyNode(local_id=pages["Handbook"], remote_id="handbook", title=root_title, children=children)


def items_by_content(navigation_store, menu_id):
    return {item.local_content_id: item for item in navigation_store.list_items(menu_id)}


class TestSyncMenu:
    """Test cases for MenuSynchronizer.sync_menu."""

    def test_creates_system_items(self, synchronizer, navigation_store, pages):
        menu_id = synchronizer.sync_menu(MENU, tree_for(pages))

        items = items_by_content(navigation_store, menu_id)
        root = items[pages["Handbook"]]
        assert len(items) == 3
        assert root.parent_id is None
        assert root.order == 1
        assert root.origin == MenuItemOrigin.SYSTEM
        assert root.url == f"{SITE_URL}/?p={pages['Handbook']}"
        assert items[pages["Onboarding"]].parent_id == root.id
        assert items[pages["Onboarding"]].order == 1
        assert items[pages["Tools"]].order == 2
        assert items[pages["Tools"]].remote_id == "tools"

    def test_second_sync_is_stable(self, synchronizer, navigation_store, pages):
        menu_id = synchronizer.sync_menu(MENU, tree_for(pages))
        before = navigation_store.list_items(menu_id)

        assert synchronizer.sync_menu(MENU, tree_for(pages)) == menu_id

        assert navigation_store.list_items(menu_id) == before

    def test_reorders_and_renames(self, synchronizer, navigation_store, pages):
        menu_id = synchronizer.sync_menu(MENU, tree_for(pages))

        synchronizer.sync_menu(MENU, tree_for(pages, ("Tools", "Onboarding"), root_title="Guide"))

        items = items_by_content(navigation_store, menu_id)
        assert items[pages["Handbook"]].title == "Guide"
        assert items[pages["Tools"]].order == 1
        assert items[pages["Onboarding"]].order == 2

    def test_removes_pages_that_left_the_tree(self, synchronizer, navigation_store, pages):
        menu_id = synchronizer.sync_menu(MENU, tree_for(pages))

        synchronizer.sync_menu(MENU, tree_for(pages, ("Onboarding",)))

        assert pages["Tools"] not in items_by_content(navigation_store, menu_id)

    def test_manual_items_untouched(self, synchronizer, navigation_store, pages):
        menu_id = navigation_store.get_or_create_menu(MENU)
        manual_id = navigation_store.add_item(
            menu_id, "Contact", MenuItemOrigin.MANUAL, url="https://example.com/contact", order=9,
        )
        linked_manual = navigation_store.add_item(
            menu_id, "My Tools", MenuItemOrigin.MANUAL, local_content_id=pages["Tools"], order=5,
        )

        synchronizer.sync_menu(MENU, tree_for(pages, ("Onboarding",)))
        synchronizer.sync_menu(MENU, [])

        contact = navigation_store.get_item(manual_id)
        assert contact.title == "Contact"
        assert contact.order == 9
        assert navigation_store.get_item(linked_manual).title == "My Tools"
        remaining = navigation_store.list_items(menu_id)
        assert {item.id for item in remaining} == {manual_id, linked_manual}

    def test_duplicate_system_items_collapsed(self, synchronizer, navigation_store, pages):
        menu_id = navigation_store.get_or_create_menu(MENU)
        first = navigation_store.add_item(menu_id, "Handbook", MenuItemOrigin.SYSTEM,
                                          local_content_id=pages["Handbook"])
        duplicate = navigation_store.add_item(menu_id, "Handbook", MenuItemOrigin.SYSTEM,
                                              local_content_id=pages["Handbook"])

        synchronizer.sync_menu(MENU, tree_for(pages, ()))

        assert navigation_store.get_item(first) is not None
        assert navigation_store.get_item(duplicate) is None

    def test_override_freezes_placement(self, synchronizer, navigation_store, content_store, pages):
        menu_id = synchronizer.sync_menu(MENU, tree_for(pages))
        tools = items_by_content(navigation_store, menu_id)[pages["Tools"]]
        navigation_store.update_item(tools.id, "Handy Tools", None, tools.url, 7)
        navigation_store.set_override(tools.id)
        content_store.update(pages["Tools"], LocalContent(title="Tools", status="trash"))

        synchronizer.sync_menu(MENU, tree_for(pages, ("Tools", "Onboarding")))

        item = navigation_store.get_item(tools.id)
        assert item.title == "Handy Tools"
        assert item.parent_id is None
        assert item.order == 7
        assert item.url is None

    def test_forest_positions(self, synchronizer, navigation_store, content_store):
        first = content_store.create(LocalContent(title="A"))
        second = content_store.create(LocalContent(title="B"))
        roots = [HierarchyNode(first, "a", "A"), HierarchyNode(second, "b", "B", order=1)]

        menu_id = synchronizer.sync_menu(MENU, roots)

        items = items_by_content(navigation_store, menu_id)
        assert items[first].order == 1
        assert items[second].order == 2
        assert items[second].parent_id is None

    def test_none_tree_clears_system_items(self, synchronizer, navigation_store, pages):
        menu_id = synchronizer.sync_menu(MENU, tree_for(pages))
        synchronizer.sync_menu(MENU, None)
        assert navigation_store.list_items(menu_id) == []

    def test_manual_child_of_removed_item_moves_to_top_level(self, synchronizer, navigation_store, pages, caplog):
        menu_id = synchronizer.sync_menu(MENU, tree_for(pages))
        tools = items_by_content(navigation_store, menu_id)[pages["Tools"]]
        manual_id = navigation_store.add_item(
            menu_id, "Tool FAQ", MenuItemOrigin.MANUAL, parent_id=tools.id, url="/faq", order=1,
        )

        with caplog.at_level("WARNING", logger="src.hierarchy.menu_synchronizer"):
            synchronizer.sync_menu(MENU, tree_for(pages, ("Onboarding",)))

        listed = {item.id: item for item in navigation_store.list_items(menu_id)}
        assert tools.id not in listed
        assert listed[manual_id].parent_id is None
        assert listed[manual_id].title == "Tool FAQ"
        assert "1 manual child item(s)" in caplog.text
        # Manual rows are never written by menu sync
        assert navigation_store.get_item(manual_id).parent_id == tools.id
