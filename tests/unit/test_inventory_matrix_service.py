"""
Unit tests for the inventory matrix façade.

Run: pytest tests/unit/test_inventory_matrix_service.py -v
"""

import asyncio
import pytest
from unittest.mock import MagicMock

from exceptions import CatalogSnapshotError, StoreNotResolvedError
from models.matrix import MatrixFilters
from models.staging import PersistResult
from models.storefront import ScanResult
from services.inventory_matrix_service import InventoryMatrixService

from tests.factories import CatalogRowFactory, StorefrontVariantFactory, make_snapshot

SHOP = "demo.myshopify.com"


@pytest.fixture
def collaborators():
    store_service = MagicMock()
    store_service.resolve_store.return_value = SHOP
    store_service.list_available_stores.return_value = [SHOP]

    catalog_service = MagicMock()
    catalog_service.get_snapshot.return_value = make_snapshot([], shops=["Store A"])

    staging = MagicMock()
    staging.list_ids.return_value = PersistResult(backend="supabase", data=set())

    scanner = MagicMock()
    scanner.scan.return_value = ScanResult(source="db")
    scanner.max_pages = 40

    return store_service, catalog_service, staging, scanner


@pytest.fixture
def service(collaborators) -> InventoryMatrixService:
    store_service, catalog_service, staging, scanner = collaborators
    return InventoryMatrixService(
        store_service=store_service,
        catalog_service=catalog_service,
        staging=staging,
        scanner=scanner
    )


def _run(service, **kwargs):
    return asyncio.run(service.query(**kwargs))


class TestQuery:
    """Tests for InventoryMatrixService.query()"""

    def test_fuzzy_match_end_to_end(self, service, collaborators):
        # Arrange
        _, catalog_service, _, scanner = collaborators
        catalog_service.get_snapshot.return_value = make_snapshot(
            [CatalogRowFactory.create(custom_sku="C12345", system_sku="", item_id="", locations={"Store A": 2})],
            shops=["Store A"]
        )
        scanner.scan.return_value = ScanResult(
            variants=[StorefrontVariantFactory.create(sku="12345")],
            source="db"
        )

        # Act
        response = _run(service, store=SHOP)

        # Assert
        assert response.shop == SHOP
        assert response.source == "db"
        assert response.total == 1
        parent = response.rows[0]
        assert parent.available_at.shopify is True
        assert parent.variants[0].stock == 2
        assert response.match_stats.fuzzy_sku == 1
        assert response.match_stats.shopify_variants_scanned == 1
        assert response.match_stats.catalog_rows_processed == 1
        assert response.summary.total_on_shopify == 1
        assert response.warning == ""

    def test_staged_ids_mark_cart(self, service, collaborators):
        _, catalog_service, staging, _ = collaborators
        catalog_service.get_snapshot.return_value = make_snapshot([CatalogRowFactory.create(item_matrix_id="77")])
        staging.list_ids.return_value = PersistResult(backend="memory", data={"matrix:77"})

        response = _run(service)

        assert response.rows[0].available_at.cart is True
        assert response.summary.total_in_cart == 1

    def test_unresolved_store_raises(self, service, collaborators):
        store_service = collaborators[0]
        store_service.resolve_store.return_value = ""
        store_service.list_available_stores.return_value = []

        with pytest.raises(StoreNotResolvedError):
            _run(service)

    def test_falls_back_to_first_listed_store(self, service, collaborators):
        store_service, _, staging, scanner = collaborators
        store_service.resolve_store.side_effect = ["", "first.myshopify.com"]
        store_service.list_available_stores.return_value = ["first.myshopify.com"]

        response = _run(service)

        assert response.shop == "first.myshopify.com"
        scanner.scan.assert_called_once_with("first.myshopify.com", False)
        staging.list_ids.assert_called_once_with("first.myshopify.com")

    def test_snapshot_failure_propagates(self, service, collaborators):
        collaborators[1].get_snapshot.side_effect = CatalogSnapshotError("Unable to load Lightspeed catalog.")

        with pytest.raises(CatalogSnapshotError):
            _run(service)

    def test_degraded_sources_become_warnings(self, service, collaborators):
        # Arrange
        _, catalog_service, staging, scanner = collaborators
        catalog_service.get_snapshot.return_value = make_snapshot(
            [CatalogRowFactory.create()], total=500, truncated=True
        )
        staging.list_ids.return_value = PersistResult(
            backend="memory", warning="Supabase is not configured.", data=set()
        )
        scanner.scan.return_value = ScanResult(warning="Shop x is not connected.", truncated=True)

        # Act
        response = _run(service)

        # Assert
        assert response.warnings[0] == "Shop x is not connected."
        assert response.warnings[1] == "Supabase is not configured."
        assert "1 of 500 rows loaded" in response.warnings[2]
        assert "stopped after 40 pages" in response.warnings[3]
        assert response.warning.startswith("Shop x is not connected. Supabase is not configured.")
        assert response.truncated is True
        assert response.catalog.total_in_source == 500

    def test_refresh_passed_through(self, service, collaborators):
        _, catalog_service, _, scanner = collaborators

        _run(service, refresh=True)

        catalog_service.get_snapshot.assert_called_once_with(True)
        scanner.scan.assert_called_once_with(SHOP, True)


class TestFiltersAndPaging:
    """Filters narrow rows and summary; facets stay unfiltered."""

    @pytest.fixture
    def catalog(self, collaborators):
        _, catalog_service, _, scanner = collaborators
        rows = [
            CatalogRowFactory.create(item_matrix_id=f"P{n}", category="Shoes" if n % 2 else "Hats",
                                     retail_price_number=float(n * 10), locations={"Store A": n})
            for n in range(1, 61)
        ]
        catalog_service.get_snapshot.return_value = make_snapshot(rows, shops=["Store A"])
        scanner.scan.return_value = ScanResult(
            variants=[StorefrontVariantFactory.create(sku=rows[0].custom_sku)],
            source="db"
        )
        return rows

    def test_category_filter_keeps_full_facets(self, service, catalog):
        response = _run(service, filters=MatrixFilters(category_name="shoes"))

        assert response.total == 30
        assert all(p.category == "Shoes" for p in response.rows)
        assert response.options.categories == ["Hats", "Shoes"]
        assert response.summary.total_products == 30

    def test_ranges_and_shopify_state(self, service, catalog):
        available = _run(service, filters=MatrixFilters(shopify_state="Available"))
        missing = _run(service, filters=MatrixFilters(shopify_state="Missing"))
        priced = _run(service, filters=MatrixFilters(price_from=100, price_to=200, stock_to=15))

        assert available.total == 1
        assert missing.total == 59
        assert [p.sku for p in priced.rows] == ["P10", "P11", "P12", "P13", "P14", "P15"]

    def test_sku_filter_checks_variants(self, service, catalog):
        response = _run(service, filters=MatrixFilters(sku=catalog[4].custom_sku.lower()))

        assert [p.sku for p in response.rows] == ["P5"]

    def test_page_size_falls_back_to_default(self, service, catalog):
        response = _run(service, page=1, page_size=7)

        assert response.page_size == 100
        assert len(response.rows) == 60
        assert response.total_pages == 1

    def test_page_clamped(self, service, catalog):
        response = _run(service, page=99, page_size=50)

        assert response.page == 2
        assert response.total_pages == 2
        assert len(response.rows) == 10
