"""Tests for offline storage and the offline-aware client."""

import json

import httpx
import pytest

from smartcart.errors import OfflineDataUnavailableError
from smartcart.offline.api import OfflineApiClient
from smartcart.offline.storage import OfflineStorage


class TestOfflineStorage:
    def test_missing_file_reads_as_empty(self, storage):
        assert storage.get_shopping_list(1) is None
        assert storage.get_retailers() == []
        assert storage.get_user_profile() is None
        assert storage.get_category("milk") is None

    def test_save_and_replace_shopping_list(self, storage):
        storage.save_shopping_list(1, [{"id": 10, "productName": "Milk"}])
        storage.save_shopping_list(2, [])
        storage.save_shopping_list(1, [{"id": 11, "productName": "Eggs"}], is_offline=True)

        entry = storage.get_shopping_list(1)
        assert entry.items == [{"id": 11, "productName": "Eggs"}]
        assert entry.is_offline
        assert entry.last_sync > 0
        raw = json.loads(storage.path.read_text())
        assert [entry["id"] for entry in raw["shoppingLists"]] == [1, 2]

    def test_persists_across_instances(self, storage):
        storage.save_retailers([{"id": 1, "name": "Kroger"}])
        storage.save_user_profile({"id": 3, "username": "sam"})

        reopened = OfflineStorage(path=storage.path)
        assert reopened.get_retailers() == [{"id": 1, "name": "Kroger"}]
        assert reopened.get_user_profile()["username"] == "sam"

    def test_categories_merge_and_lookup_is_case_insensitive(self, storage):
        storage.save_categories({"milk": "Dairy & Eggs"})
        storage.save_categories({"apple": "Produce"})

        assert storage.get_category("MILK") == "Dairy & Eggs"
        assert storage.get_category("Apple") == "Produce"

    def test_corrupt_file_is_treated_as_empty(self, storage):
        storage.path.write_text("{not json")

        assert storage.get_shopping_list(1) is None
        storage.save_categories({"milk": "Dairy & Eggs"})
        assert storage.get_category("milk") == "Dairy & Eggs"

    def test_null_sections_read_as_defaults(self, storage):
        storage.path.write_text(
            json.dumps({"shoppingLists": None, "categories": None, "retailers": None, "userProfile": None})
        )

        assert storage.get_shopping_list(1) is None
        assert storage.get_category("milk") is None
        assert storage.get_retailers() == []
        assert storage.get_user_profile() is None
        storage.save_categories({"milk": "Dairy & Eggs"})
        assert storage.get_category("milk") == "Dairy & Eggs"

    def test_clear_removes_file(self, storage):
        storage.save_retailers([])
        storage.clear()

        assert not storage.path.exists()
        storage.clear()


LIST_PAYLOAD = {
    "id": 5,
    "name": "Weekly",
    "items": [
        {"id": 1, "productName": "Milk", "isCompleted": False},
        {"id": 2, "productName": "Bread", "isCompleted": False},
    ],
}


class TestOfflineApiClient:
    @pytest.mark.asyncio
    async def test_online_fetch_caches_items(self, recorder, make_client, storage):
        recorder.add("GET", "/api/shopping-lists/5", httpx.Response(200, json=LIST_PAYLOAD))
        offline = OfflineApiClient(make_client(), storage)

        data = await offline.fetch_shopping_list(5)

        assert data == LIST_PAYLOAD
        assert storage.get_shopping_list(5).items == LIST_PAYLOAD["items"]

    @pytest.mark.asyncio
    async def test_network_failure_falls_back_to_cache(self, recorder, make_client, storage):
        storage.save_shopping_list(5, LIST_PAYLOAD["items"])
        recorder.add("GET", "/api/shopping-lists/5", httpx.ConnectError("down"))
        offline = OfflineApiClient(make_client(), storage)

        data = await offline.fetch_shopping_list(5)

        assert data["isOffline"] is True
        assert data["items"] == LIST_PAYLOAD["items"]
        assert data["lastSync"] == storage.get_shopping_list(5).last_sync

    @pytest.mark.asyncio
    async def test_offline_without_cache_raises(self, recorder, make_client, storage):
        offline = OfflineApiClient(make_client(offline_mode=True), storage)

        with pytest.raises(OfflineDataUnavailableError, match="No offline data"):
            await offline.fetch_shopping_list(5)
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_categorize_uses_cache_first(self, recorder, make_client, storage):
        storage.save_categories({"oat milk": "Beverages"})
        offline = OfflineApiClient(make_client(), storage)

        assert await offline.categorize_product("Oat Milk") == "Beverages"
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_categorize_online_caches_result(self, recorder, make_client, storage):
        recorder.add(
            "POST",
            "/api/products/batch-categorize",
            httpx.Response(200, json=[{"category": {"category": "Produce", "confidence": 0.9}}]),
        )
        offline = OfflineApiClient(make_client(), storage)

        assert await offline.categorize_product("Kale") == "Produce"
        assert storage.get_category("kale") == "Produce"
        assert json.loads(recorder.requests[0].content) == {"products": [{"productName": "Kale"}]}

    @pytest.mark.asyncio
    async def test_categorize_empty_answer_is_uncategorized(self, recorder, make_client, storage):
        recorder.add("POST", "/api/products/batch-categorize", httpx.Response(200, json=[]))
        offline = OfflineApiClient(make_client(), storage)

        assert await offline.categorize_product("Widget") == "Uncategorized"

    @pytest.mark.asyncio
    async def test_categorize_network_failure_is_uncategorized(self, recorder, make_client, storage):
        recorder.add("POST", "/api/products/batch-categorize", httpx.ConnectError("down"))
        offline = OfflineApiClient(make_client(), storage)

        assert await offline.categorize_product("Chicken thighs") == "Uncategorized"
        assert storage.get_category("chicken thighs") is None

    @pytest.mark.asyncio
    async def test_categorize_offline_uses_basic_rules(self, make_client, storage):
        offline = OfflineApiClient(make_client(offline_mode=True), storage)

        assert await offline.categorize_product("Chicken thighs") == "Meat & Seafood"
        assert await offline.categorize_product("Paper plates") == "Uncategorized"

    @pytest.mark.asyncio
    async def test_update_item_applies_locally_then_syncs(self, recorder, make_client, storage):
        storage.save_shopping_list(5, LIST_PAYLOAD["items"])
        recorder.add("PATCH", "/api/shopping-list/items/2", httpx.Response(200, json={"id": 2}))
        offline = OfflineApiClient(make_client(), storage)

        await offline.update_shopping_list_item(5, 2, {"isCompleted": True})

        items = storage.get_shopping_list(5).items
        assert items[1] == {"id": 2, "productName": "Bread", "isCompleted": True}
        assert json.loads(recorder.requests[0].content) == {"isCompleted": True}

    @pytest.mark.asyncio
    async def test_update_item_sync_failure_keeps_local_change(self, recorder, make_client, storage):
        storage.save_shopping_list(5, LIST_PAYLOAD["items"])
        recorder.add("PATCH", "/api/shopping-list/items/1", httpx.ConnectError("down"))
        offline = OfflineApiClient(make_client(), storage)

        await offline.update_shopping_list_item(5, 1, {"quantity": 2})

        assert storage.get_shopping_list(5).items[0]["quantity"] == 2

    @pytest.mark.asyncio
    async def test_update_item_offline_does_not_call_backend(self, recorder, make_client, storage):
        storage.save_shopping_list(5, LIST_PAYLOAD["items"])
        offline = OfflineApiClient(make_client(offline_mode=True), storage)

        await offline.update_shopping_list_item(5, 1, {"quantity": 3})

        entry = storage.get_shopping_list(5)
        assert entry.items[0]["quantity"] == 3
        assert entry.is_offline
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_fetch_recovers_after_connection_loss(self, recorder, make_client, storage):
        storage.save_shopping_list(5, [{"id": 9, "productName": "Old"}])
        answers = iter([httpx.ConnectError("down"), httpx.Response(200, json=LIST_PAYLOAD)])

        def flaky(request):
            answer = next(answers)
            if isinstance(answer, Exception):
                raise answer
            return answer

        recorder.add("GET", "/api/shopping-lists/5", flaky)
        client = make_client(max_network_retries=0)
        offline = OfflineApiClient(client, storage)

        stale = await offline.fetch_shopping_list(5)
        assert stale["isOffline"] is True
        assert not offline.is_online()

        fresh = await offline.fetch_shopping_list(5)
        assert fresh == LIST_PAYLOAD
        assert "isOffline" not in fresh
        assert offline.is_online()
        assert storage.get_shopping_list(5).items == LIST_PAYLOAD["items"]

    @pytest.mark.asyncio
    async def test_update_after_connection_loss_still_syncs(self, recorder, make_client, storage):
        storage.save_shopping_list(5, LIST_PAYLOAD["items"])
        recorder.add("GET", "/api/shopping-lists/5", httpx.ConnectError("down"))
        recorder.add("PATCH", "/api/shopping-list/items/1", httpx.Response(200, json={"id": 1}))
        offline = OfflineApiClient(make_client(max_network_retries=0), storage)

        await offline.fetch_shopping_list(5)
        await offline.update_shopping_list_item(5, 1, {"isCompleted": True})

        assert [r.method for r in recorder.requests] == ["GET", "PATCH"]
        assert not storage.get_shopping_list(5).is_offline

    @pytest.mark.asyncio
    async def test_update_item_sync_failure_marks_copy_offline(self, recorder, make_client, storage):
        storage.save_shopping_list(5, LIST_PAYLOAD["items"])
        recorder.add("PATCH", "/api/shopping-list/items/2", httpx.Response(503, text="busy"))
        offline = OfflineApiClient(make_client(), storage)

        await offline.update_shopping_list_item(5, 2, {"isCompleted": True})

        entry = storage.get_shopping_list(5)
        assert entry.is_offline
        assert entry.items[1]["isCompleted"] is True
