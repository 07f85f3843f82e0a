"""Unit tests for storage.navigation_store module."""

import pytest

from src.storage.errors import MenuNotFoundError
from src.storage.models import MenuItemOrigin


class TestNavigationStore:
    """Test cases for menus and menu items."""

    def test_get_or_create_menu_is_idempotent(self, navigation_store):
        first = navigation_store.get_or_create_menu("Main")
        second = navigation_store.get_or_create_menu("Main")

        assert first == second
        assert navigation_store.find_menu("Main").id == first
        assert navigation_store.find_menu("Other") is None

    def test_add_and_list_items_ordered(self, navigation_store):
        menu_id = navigation_store.get_or_create_menu("Main")
        b = navigation_store.add_item(menu_id, "B", MenuItemOrigin.SYSTEM, order=2)
        a = navigation_store.add_item(menu_id, "A", MenuItemOrigin.SYSTEM, order=1)
        child = navigation_store.add_item(menu_id, "A.1", MenuItemOrigin.MANUAL, parent_id=a, order=1)

        items = navigation_store.list_items(menu_id)

        assert [i.id for i in items] == [a, b, child]
        assert items[2].origin == MenuItemOrigin.MANUAL
        assert items[2].is_system is False
        assert items[0].is_system is True

    def test_list_items_unknown_menu(self, navigation_store):
        with pytest.raises(MenuNotFoundError):
            navigation_store.list_items(42)

    def test_update_item_keeps_origin(self, navigation_store):
        menu_id = navigation_store.get_or_create_menu("Main")
        item_id = navigation_store.add_item(menu_id, "Old", MenuItemOrigin.MANUAL, url="/old")

        navigation_store.update_item(item_id, "New", None, "/new", 3)

        item = navigation_store.get_item(item_id)
        assert (item.title, item.url, item.order) == ("New", "/new", 3)
        assert item.origin == MenuItemOrigin.MANUAL

    def test_delete_parent_leaves_child_untouched(self, navigation_store):
        """parent_id has no foreign key, so children are never rewritten."""
        menu_id = navigation_store.get_or_create_menu("Main")
        parent = navigation_store.add_item(menu_id, "Parent", MenuItemOrigin.SYSTEM)
        child = navigation_store.add_item(menu_id, "Manual", MenuItemOrigin.MANUAL, parent_id=parent)

        navigation_store.delete_item(parent)

        assert navigation_store.get_item(parent) is None
        assert navigation_store.get_item(child).parent_id == parent

    def test_list_items_shows_orphan_at_top_level(self, navigation_store):
        menu_id = navigation_store.get_or_create_menu("Main")
        first = navigation_store.add_item(menu_id, "First", MenuItemOrigin.SYSTEM, order=1)
        parent = navigation_store.add_item(menu_id, "Parent", MenuItemOrigin.SYSTEM, order=2)
        child = navigation_store.add_item(menu_id, "Manual", MenuItemOrigin.MANUAL, parent_id=parent, order=3)
        navigation_store.delete_item(parent)

        items = navigation_store.list_items(menu_id)

        assert [i.id for i in items] == [first, child]
        assert items[1].parent_id is None
        # The stored row is not rewritten
        assert navigation_store.get_item(child).parent_id == parent

    def test_set_override(self, navigation_store):
        menu_id = navigation_store.get_or_create_menu("Main")
        item_id = navigation_store.add_item(menu_id, "Item", MenuItemOrigin.SYSTEM)

        navigation_store.set_override(item_id)
        assert navigation_store.get_item(item_id).override is True

        navigation_store.set_override(item_id, False)
        assert navigation_store.get_item(item_id).override is False
