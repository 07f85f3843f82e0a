"""Integration tests for the full sync pipeline.

Covers the path from a Notion page to a routed, menu-linked local record:
registration, sync, redirects, composite status, batches and navigation.
"""

import json

from src.registry.models import SyncStatus
from src.storage.models import META_CHILD_IDS, META_PARENT_ID
from src.sync.models import StatusKind
from tests.fixtures.notion_pages import SITE_URL
from tests.fixtures.notion_pages import (
    CHILD_ID,
    GRANDCHILD_ID,
    ROOT_ID,
    ROOT_ID_DELIMITED,
    SECOND_CHILD_ID,
    child_page,
    link_to_page,
    paragraph,
)


def add_handbook(fake_fetcher):
    """Handbook → (Onboarding → Tools, Policies), with a cross link from Policies."""
    fake_fetcher.add_page(ROOT_ID, "Handbook", blocks=[
        paragraph("Welcome"),
        child_page(CHILD_ID, "Onboarding"),
        child_page(SECOND_CHILD_ID, "Policies"),
    ])
    fake_fetcher.add_page(CHILD_ID, "Onboarding", parent_page_id=ROOT_ID, blocks=[
        child_page(GRANDCHILD_ID, "Tools"),
    ])
    fake_fetcher.add_page(SECOND_CHILD_ID, "Policies", parent_page_id=ROOT_ID, blocks=[
        link_to_page(GRANDCHILD_ID),
    ])
    fake_fetcher.add_page(GRANDCHILD_ID, "Tools", parent_page_id=CHILD_ID)


class TestRegisterSyncRoute:
    """A link works before and after its page is synced."""

    def test_getting_started_scenario(self, context, client, fake_fetcher):
        page_id = "abc123"
        fake_fetcher.add_page(page_id, "Getting Started")

        context.registry.register(page_id, "Getting Started", "page")
        before = client.get('/notion/getting-started')

        result = context.orchestrator.sync(page_id)
        after = client.get('/notion/getting-started')

        entry_id = context.registry.register(page_id, "Getting Started", "page")
        entry = context.registry.find_by_remote_id(page_id)

        assert before.headers['Location'] == "https://notion.so/abc123"
        assert result.success is True
        assert after.status_code == 302
        assert after.headers['Location'] == f"{SITE_URL}/?p={result.local_content_id}"
        assert entry_id == entry.id
        assert entry.slug == "getting-started"
        assert entry.sync_status == SyncStatus.SYNCED
        assert entry.local_content_id == result.local_content_id
        assert entry.access_count == 2

    def test_links_resolve_before_target_sync(self, context, client, fake_fetcher):
        add_handbook(fake_fetcher)

        context.orchestrator.sync(SECOND_CHILD_ID)
        policies = context.registry.find_by_remote_id(SECOND_CHILD_ID)
        body = context.content_store.get(policies.local_content_id).body
        tools = context.registry.find_by_remote_id(GRANDCHILD_ID)

        assert tools.is_placeholder_slug
        assert f'href="/notion/{tools.slug}"' in body
        assert client.get(f'/notion/{tools.slug}').headers['Location'] == f"https://notion.so/{GRANDCHILD_ID}"

        placeholder_href = f'/notion/{tools.slug}'

        tools_result = context.orchestrator.sync(GRANDCHILD_ID)

        assert context.registry.find_by_remote_id(GRANDCHILD_ID).slug == "tools"
        # Links rendered before the rename still resolve
        old_link = client.get(placeholder_href)
        assert old_link.status_code == 302
        assert old_link.headers['Location'] == f"{SITE_URL}/?p={tools_result.local_content_id}"
        # and stored bodies now point at the new slug
        body = context.content_store.get(policies.local_content_id).body
        assert 'href="/notion/tools"' in body
        assert placeholder_href not in body
        assert client.get('/notion/tools').status_code == 302


class TestTreeSync:
    """Syncing a whole tree builds hierarchy metadata and the menu."""

    def test_full_tree(self, context, fake_fetcher):
        add_handbook(fake_fetcher)

        results = context.orchestrator.sync_many([ROOT_ID, CHILD_ID, SECOND_CHILD_ID, GRANDCHILD_ID])

        assert all(result.success for result in results.values())
        root_local = results[ROOT_ID].local_content_id
        tools_local = results[GRANDCHILD_ID].local_content_id
        assert json.loads(context.content_store.get_meta(root_local, META_CHILD_IDS)) == [
            CHILD_ID, SECOND_CHILD_ID,
        ]
        assert context.content_store.get_meta(tools_local, META_PARENT_ID) == CHILD_ID

        tree = context.hierarchy_builder.build_tree(context.hierarchy_builder.find_root(GRANDCHILD_ID))
        assert [node.title for node in tree.walk()] == ["Handbook", "Onboarding", "Tools", "Policies"]

        menu = context.navigation_store.find_menu("Notion Navigation")
        items = {item.title: item for item in context.navigation_store.list_items(menu.id)}
        assert set(items) == {"Handbook", "Onboarding", "Policies", "Tools"}
        assert items["Tools"].parent_id == items["Onboarding"].id
        assert items["Policies"].order == 2

    def test_resync_is_idempotent(self, context, fake_fetcher):
        add_handbook(fake_fetcher)
        ids = [ROOT_ID, CHILD_ID, SECOND_CHILD_ID, GRANDCHILD_ID]
        first = context.orchestrator.sync_many(ids)
        menu = context.navigation_store.find_menu("Notion Navigation")
        menu_before = context.navigation_store.list_items(menu.id)

        second = context.orchestrator.sync_many([ROOT_ID_DELIMITED, CHILD_ID, SECOND_CHILD_ID, GRANDCHILD_ID])

        assert second[ROOT_ID_DELIMITED].local_content_id == first[ROOT_ID].local_content_id
        assert len(context.registry.list_entries()) == 4
        assert context.navigation_store.list_items(menu.id) == menu_before


class TestStatusAndBatches:
    """Composite status follows batches and Notion edits."""

    def test_batch_lifecycle(self, context, client, fake_fetcher):
        add_handbook(fake_fetcher)
        batch_id = context.batch_worker.schedule([ROOT_ID, CHILD_ID])

        during = client.get(f'/api/sync-status?batch_id={batch_id}').get_json()
        batch = context.batch_worker.run(batch_id)
        after = client.get(f'/api/sync-status?ids={ROOT_ID},{CHILD_ID}').get_json()

        assert during['pages'][ROOT_ID]['status'] == 'syncing'
        assert batch.successful == 2
        assert after['pages'][ROOT_ID]['status'] == 'synced'
        assert after['pages'][CHILD_ID]['status'] == 'synced'

    def test_outdated_then_failed(self, context, fake_fetcher):
        fake_fetcher.add_page(ROOT_ID, "Handbook", last_edited_time="2024-01-15T10:30:00.000Z")
        context.orchestrator.sync(ROOT_ID)
        entry = context.registry.find_by_remote_id(ROOT_ID)
        context.registry.update_sync_timestamps(ROOT_ID, "2030-01-01T00:00:00Z", entry.local_last_synced)

        assert context.status_resolver.status_for(ROOT_ID).status == StatusKind.OUTDATED

        fake_fetcher.block_errors[ROOT_ID] = "Notion API failure (after 3 retries)"
        context.orchestrator.sync(ROOT_ID)
        status = context.status_resolver.status_for(ROOT_ID)

        assert status.status == StatusKind.FAILED
        assert status.error == "Notion API failure (after 3 retries)"
        assert context.sync_log.recent(unresolved_only=True)[0].category == "api"
