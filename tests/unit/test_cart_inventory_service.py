"""
Unit tests for CartInventoryService (staging mutations and undo).

Run: pytest tests/unit/test_cart_inventory_service.py -v
"""

import pytest
from unittest.mock import MagicMock

from exceptions import EmptyStagingRequestError, UndoSessionNotFoundError
from models.staging import CartFilters, StagingParent, SyncStatus
from services.cart_inventory_service import (
    COMPARE_SESSION_LIMIT,
    NO_RECENT_SYNC_MESSAGE,
    CartInventoryService,
    UNDO_TARGET,
)
from services.staging_service import (
    MemoryStagingBackend,
    REVIEW_ERROR_MESSAGE,
    StagingService,
    SupabaseStagingBackend,
)
from services.undo_session_service import UndoSessionService

SHOP = "demo.myshopify.com"


def _row(parent_id: str, sku: str, title: str = "", **extra) -> dict:
    return {
        "id": parent_id,
        "sku": sku,
        "title": title or sku,
        "category": extra.pop("category", "Apparel"),
        "brand": extra.pop("brand", "Brand Co"),
        "price": extra.pop("price", 30),
        "variants": extra.pop("variants", [
            {"id": f"{parent_id}-1", "sku": f"{sku}-S", "stock": 2, "available_in_shopify": True},
            {"id": f"{parent_id}-2", "sku": f"{sku}-M", "stock": 1, "available_in_shopify": False},
        ]),
        **extra,
    }


@pytest.fixture
def service(no_db) -> CartInventoryService:
    store_service = MagicMock()
    store_service.list_available_stores.return_value = [SHOP]
    store_service.resolve_store.side_effect = lambda requested, shops=None: (requested or SHOP).lower()
    return CartInventoryService(
        staging=StagingService([SupabaseStagingBackend(), MemoryStagingBackend()]),
        undo_sessions=UndoSessionService(),
        store_service=store_service
    )


class TestStageAdd:
    """Tests for stage_add()"""

    def test_adds_parents_and_records_session(self, service):
        # Act
        response = service.stage_add(SHOP, [_row("matrix:1", "P-1"), _row("matrix:2", "P-2")])

        # Assert
        assert response.upserted == 2
        assert response.undo_session.action == "stage-add"
        assert response.undo_session.note == "Queued 2 parent item(s) to Cart Inventory."
        assert "not configured" in response.warning
        listed = service.list_inventory(SHOP)
        assert [p.id for p in listed.rows] == ["matrix:1", "matrix:2"]
        assert listed.rows[0].status == SyncStatus.PENDING

    def test_empty_rows_rejected(self, service):
        with pytest.raises(EmptyStagingRequestError) as exc_info:
            service.stage_add(SHOP, [{"title": "no sku"}])

        assert exc_info.value.message == "rows[] is required for stage-add action."
        assert exc_info.value.status_code == 400

    def test_undo_removes_new_and_restores_overwritten(self, service):
        # Arrange
        service.stage_add(SHOP, [_row("matrix:1", "P-1", title="Original")])
        service.stage_add(SHOP, [_row("matrix:1", "P-1", title="Changed"), _row("matrix:2", "P-2")])

        # Act
        undone = service.undo(SHOP)

        # Assert
        listed = service.list_inventory(SHOP)
        assert undone.undone_session.action == "stage-add"
        assert [p.id for p in listed.rows] == ["matrix:1"]
        assert listed.rows[0].title == "Original"


class TestStageRemove:
    """Tests for stage_remove()"""

    def test_remove_then_undo_restores(self, service):
        service.stage_add(SHOP, [_row("matrix:1", "P-1"), _row("matrix:2", "P-2")])

        removed = service.stage_remove(SHOP, ["MATRIX:1", "matrix:1", " "])
        assert removed.removed == 1
        assert [p.id for p in service.list_inventory(SHOP).rows] == ["matrix:2"]

        service.undo(SHOP)
        assert [p.id for p in service.list_inventory(SHOP).rows] == ["matrix:1", "matrix:2"]

    def test_empty_ids_rejected(self, service):
        with pytest.raises(EmptyStagingRequestError) as exc_info:
            service.stage_remove(SHOP, ["", "  "])

        assert exc_info.value.message == "parent_ids[] is required for stage-remove action."

    def test_removing_unknown_ids_records_no_session(self, service):
        response = service.stage_remove(SHOP, ["matrix:missing"])

        assert response.removed == 0
        assert response.undo_session is None


class TestSetStatus:
    """Tests for set_status()"""

    def test_error_status_marks_review(self, service):
        service.stage_add(SHOP, [_row("matrix:1", "P-1")])

        response = service.set_status(SHOP, ["matrix:1"], "error")
        parent = service.list_inventory(SHOP).rows[0]

        assert response.updated == 1
        assert response.status == SyncStatus.ERROR
        assert response.undo_session.note == "Updated 1 parent item(s) to ERROR."
        assert parent.status == SyncStatus.ERROR
        assert all(v.error == REVIEW_ERROR_MESSAGE for v in parent.variants)

    def test_undo_restores_previous_statuses(self, service):
        service.stage_add(SHOP, [_row("matrix:1", "P-1")])
        service.set_status(SHOP, ["matrix:1"], "PROCESSED")

        service.undo(SHOP)
        parent = service.list_inventory(SHOP).rows[0]

        assert [v.status for v in parent.variants] == [SyncStatus.PROCESSED, SyncStatus.PENDING]
        assert parent.status == SyncStatus.PENDING


class TestUndo:
    """Tests for undo()"""

    def test_nothing_to_undo(self, service):
        with pytest.raises(UndoSessionNotFoundError) as exc_info:
            service.undo(SHOP)

        assert exc_info.value.message == "No undo session found for this shop."
        assert exc_info.value.status_code == 404

    def test_undo_named_session(self, service):
        first = service.stage_add(SHOP, [_row("matrix:1", "P-1")]).undo_session
        service.stage_add(SHOP, [_row("matrix:2", "P-2")])

        service.undo(SHOP, first.id)

        assert [p.id for p in service.list_inventory(SHOP).rows] == ["matrix:2"]
        assert len(service.list_sessions(SHOP).sessions) == 1

    def test_session_consumed_once(self, service):
        service.stage_add(SHOP, [_row("matrix:1", "P-1")])

        service.undo(SHOP)

        with pytest.raises(UndoSessionNotFoundError):
            service.undo(SHOP)


class TestListInventory:
    """Tests for list_inventory()"""

    @pytest.fixture
    def staged(self, service):
        service.stage_add(SHOP, [
            _row("matrix:10", "P-10", title="Tony Pants", category="Pants", brand="Acme", price=50),
            _row("matrix:2", "P-2", title="Polo Shirt", category="Shirts", brand="Acme", price=20),
            _row("matrix:1", "P-1", title="Wool Hat", category="Hats", brand="Other", price=10),
        ])
        service.set_status(SHOP, ["matrix:2"], "PROCESSED")
        return service

    def test_sorted_by_sku_with_facets(self, staged):
        response = staged.list_inventory(SHOP)

        assert [p.sku for p in response.rows] == ["P-1", "P-2", "P-10"]
        assert response.options.categories == ["Hats", "Pants", "Shirts"]
        assert response.options.brands == ["Acme", "Other"]
        assert response.summary.total_items == 6
        assert response.summary.total_processed == 4
        assert response.summary.total_pending == 2
        assert [s.action for s in response.undo_sessions] == ["set-status", "stage-add"]

    def test_status_filter(self, staged):
        response = staged.list_inventory(SHOP, CartFilters(status="Processed"))

        assert [p.id for p in response.rows] == ["matrix:2"]
        assert response.summary.total_products == 1
        assert response.options.categories == ["Hats", "Pants", "Shirts"]

    def test_keyword_matches_variant_fields(self, staged):
        response = staged.list_inventory(SHOP, CartFilters(keyword="p-10-m"))

        assert [p.id for p in response.rows] == ["matrix:10"]

    def test_brand_and_price_filters(self, staged):
        response = staged.list_inventory(SHOP, CartFilters(brand="acme", price_to=30))

        assert [p.id for p in response.rows] == ["matrix:2"]

    def test_page_size_allow_list(self, staged):
        response = staged.list_inventory(SHOP, page=5, page_size=3)

        assert response.page_size == 20
        assert response.page == 1

    def test_sessions_newest_first(self, staged):
        sessions = staged.list_sessions(SHOP).sessions

        assert all(s.target == UNDO_TARGET for s in sessions)
        assert [s.action for s in sessions] == ["set-status", "stage-add"]


class TestCompare:
    """Tests for compare()"""

    def test_without_stage_add_history(self, service):
        # Arrange
        service.staging.upsert(SHOP, [StagingParent(id="matrix:1", sku="P-1")])

        # Act
        response = service.compare(SHOP)

        # Assert
        assert response.has_last_sync is False
        assert response.message == NO_RECENT_SYNC_MESSAGE
        assert response.rows == []
        assert response.total_cart_count == 1
        assert response.last_sync_count == 0

    def test_lists_parents_outside_recent_sessions(self, service):
        # Arrange
        service.stage_add(SHOP, [_row("matrix:1", "P-1"), _row("matrix:2", "P-2")])
        service.staging.upsert(SHOP, [StagingParent(id="matrix:3", sku="P-3")])
        service.set_status(SHOP, ["matrix:3"], "PROCESSED")

        # Act
        response = service.compare(SHOP)

        # Assert
        assert response.has_last_sync is True
        assert [p.id for p in response.rows] == ["matrix:3"]
        assert response.last_sync_count == 2
        assert response.total_cart_count == 3
        assert response.not_in_last_sync_count == 1
        assert response.last_sync_note == "Last sync: 2 product(s) queued from Inventory."
        assert response.message == ""

    def test_only_newest_sessions_count(self, service):
        for n in range(COMPARE_SESSION_LIMIT + 1):
            service.stage_add(SHOP, [_row(f"matrix:{n}", f"P-{n}")])

        response = service.compare(SHOP)

        assert [p.id for p in response.rows] == ["matrix:0"]
        assert response.last_sync_count == COMPARE_SESSION_LIMIT
        assert response.total_cart_count == COMPARE_SESSION_LIMIT + 1

    def test_ids_compared_case_insensitively(self, service):
        service.stage_add(SHOP, [_row("Matrix:A", "P-A")])

        response = service.compare(SHOP)

        assert response.rows == []
        assert response.last_sync_count == 1
