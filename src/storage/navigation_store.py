"""Navigation store: named menus and their items.

Menu items carry an `origin` marker written once at creation. Menu sync
only ever touches SYSTEM items; MANUAL items belong to whoever added them.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from .connection import PathLike, get_connection, init_db
from .errors import MenuNotFoundError, StorageError
from .models import Menu, MenuItem, MenuItemOrigin
from .timestamps import format_timestamp, utc_now

logger = logging.getLogger(__name__)


class NavigationStore:
    """SQLite-backed menus and menu items.

    Example:
        >>> nav = NavigationStore(".notion-sync/notion-sync.db")
        >>> menu_id = nav.get_or_create_menu("Notion Navigation")
        >>> nav.add_item(menu_id, "Contact", url="/contact", origin=MenuItemOrigin.MANUAL)
    """

    def __init__(self, db_path: PathLike):
        self._db_path = db_path
        init_db(db_path)

    def get_or_create_menu(self, name: str) -> int:
        """Return the id of the menu called `name`, creating it if needed.

        Raises:
            StorageError: If the menu cannot be created
        """
        try:
            with get_connection(self._db_path) as conn:
                row = conn.execute("SELECT id FROM menus WHERE name = ?", (name,)).fetchone()
                if row:
                    return row['id']
                cursor = conn.execute(
                    "INSERT INTO menus (name, created_at) VALUES (?, ?)",
                    (name, format_timestamp(utc_now())),
                )
                logger.info(f"Created menu '{name}' ({cursor.lastrowid})")
                return cursor.lastrowid
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="create menu")

    def find_menu(self, name: str) -> Optional[Menu]:
        with get_connection(self._db_path) as conn:
            row = conn.execute("SELECT id, name FROM menus WHERE name = ?", (name,)).fetchone()
        return Menu(id=row['id'], name=row['name']) if row else None

    def list_items(self, menu_id: int) -> List[MenuItem]:
        """All items of a menu, ordered by parent, position and id.

        An item whose parent no longer exists is listed at the top level.
        The stored row keeps its parent_id.

        Raises:
            MenuNotFoundError: If the menu does not exist
        """
        with get_connection(self._db_path) as conn:
            if conn.execute("SELECT 1 FROM menus WHERE id = ?", (menu_id,)).fetchone() is None:
                raise MenuNotFoundError(menu_id)
            rows = conn.execute(
                """
                SELECT * FROM menu_items WHERE menu_id = ?
                ORDER BY COALESCE(parent_id, 0), position, id
                """,
                (menu_id,),
            ).fetchall()
        items = [self._to_item(row) for row in rows]

        ids = {item.id for item in items}
        orphans = [item for item in items if item.parent_id is not None and item.parent_id not in ids]
        if not orphans:
            return items
        for item in orphans:
            logger.debug(f"Menu item {item.id} lost its parent {item.parent_id}, listing it at top level")
            item.parent_id = None
        return sorted(items, key=lambda i: (i.parent_id or 0, i.order, i.id))

    def get_item(self, item_id: int) -> Optional[MenuItem]:
        with get_connection(self._db_path) as conn:
            row = conn.execute("SELECT * FROM menu_items WHERE id = ?", (item_id,)).fetchone()
        return self._to_item(row) if row else None

    def add_item(
        self,
        menu_id: int,
        title: str,
        origin: MenuItemOrigin,
        parent_id: Optional[int] = None,
        local_content_id: Optional[int] = None,
        remote_id: Optional[str] = None,
        url: Optional[str] = None,
        order: int = 0,
    ) -> int:
        """Create a menu item. `origin` is fixed for the item's lifetime.

        Raises:
            StorageError: If the insert fails
        """
        now = format_timestamp(utc_now())
        try:
            with get_connection(self._db_path) as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO menu_items
                        (menu_id, parent_id, local_content_id, remote_id, title, url,
                         position, origin, override, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                    """,
                    (menu_id, parent_id, local_content_id, remote_id, title, url,
                     order, MenuItemOrigin(origin).value, now, now),
                )
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="create menu item")
        return cursor.lastrowid

    def update_item(
        self,
        item_id: int,
        title: str,
        parent_id: Optional[int],
        url: Optional[str],
        order: int,
    ) -> None:
        """Update placement and label of an item. Never changes its origin.

        Raises:
            StorageError: If the update fails
        """
        try:
            with get_connection(self._db_path) as conn:
                conn.execute(
                    """
                    UPDATE menu_items
                    SET title = ?, parent_id = ?, url = ?, position = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (title, parent_id, url, order, format_timestamp(utc_now()), item_id),
                )
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="update menu item")

    def delete_item(self, item_id: int) -> None:
        try:
            with get_connection(self._db_path) as conn:
                conn.execute("DELETE FROM menu_items WHERE id = ?", (item_id,))
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="delete menu item")

    def set_override(self, item_id: int, override: bool = True) -> None:
        """Freeze (or release) a system item's title, order and parent."""
        with get_connection(self._db_path) as conn:
            conn.execute(
                "UPDATE menu_items SET override = ?, updated_at = ? WHERE id = ?",
                (1 if override else 0, format_timestamp(utc_now()), item_id),
            )

    @staticmethod
    def _to_item(row: Dict[str, Any]) -> MenuItem:
        return MenuItem(
            id=row['id'],
            menu_id=row['menu_id'],
            parent_id=row['parent_id'],
            local_content_id=row['local_content_id'],
            remote_id=row['remote_id'],
            title=row['title'],
            url=row['url'],
            order=row['position'],
            origin=MenuItemOrigin(row['origin']),
            override=bool(row['override']),
        )
