"""
Test data factories.

Uses factory pattern to generate consistent test data.
"""

from typing import Optional

from models.catalog import CatalogRow, CatalogSnapshot
from models.staging import StagingParent, StagingVariant, SyncStatus
from models.storefront import StorefrontVariant


class CatalogRowFactory:
    """
    Factory for catalog snapshot rows.

    Usage:
        row = CatalogRowFactory.create(custom_sku="C12345", locations={"Store A": 2})
        rows = CatalogRowFactory.create_batch(3, item_matrix_id="77")
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(cls, **overrides) -> CatalogRow:
        counter = cls._next_counter()
        data = {
            "id": str(1000 + counter),
            "item_id": str(1000 + counter),
            "item_matrix_id": "0",
            "system_sku": f"21000000{counter:04d}",
            "custom_sku": f"SKU-{counter:04d}",
            "upc": "",
            "ean": "",
            "description": f"TEST ITEM {counter}",
            "color": "",
            "size": "",
            "category": "Apparel",
            "item_type": "Brand Co",
            "retail_price_number": 25.0,
            "locations": {"Store A": 1},
        }
        data.update(overrides)
        return CatalogRow(**data)

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list[CatalogRow]:
        return [cls.create(**overrides) for _ in range(count)]


class StorefrontVariantFactory:
    """
    Factory for Shopify variants.

    Usage:
        variant = StorefrontVariantFactory.create(sku="12345", color="Red")
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(cls, **overrides) -> StorefrontVariant:
        counter = cls._next_counter()
        data = {
            "id": f"gid://shopify/ProductVariant/{5000 + counter}",
            "product_id": f"gid://shopify/Product/{900 + counter}",
            "product_title": f"Shopify Product {counter}",
            "sku": f"SHOP-{counter:04d}",
            "barcode": "",
            "price": 25.0,
            "inventory_quantity": 3,
            "color": "",
            "size": "",
            "image": "",
            "product_image": f"https://cdn.example.com/p{counter}.jpg",
        }
        data.update(overrides)
        return StorefrontVariant(**data)


class StagingParentFactory:
    """
    Factory for staged parents.

    Usage:
        parent = StagingParentFactory.create(statuses=["PROCESSED", "PENDING"])
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        sku: Optional[str] = None,
        statuses: Optional[list[str]] = None,
        stocks: Optional[list[Optional[float]]] = None,
        **overrides
    ) -> StagingParent:
        counter = cls._next_counter()
        parent_id = id or f"matrix:{counter}"
        statuses = statuses if statuses is not None else ["PENDING"]
        stocks = stocks if stocks is not None else [1.0] * len(statuses)

        variants = [
            StagingVariant(
                id=f"{parent_id}-v{i + 1}",
                parent_id=parent_id,
                sku=f"VAR-{counter}-{i + 1}",
                upc=f"0000{counter}{i + 1}",
                stock=stock,
                status=SyncStatus.parse(status),
            )
            for i, (status, stock) in enumerate(zip(statuses, stocks))
        ]
        data = {
            "id": parent_id,
            "title": f"Parent {counter}",
            "category": "Apparel",
            "brand": "Brand Co",
            "sku": sku or f"P-{counter:04d}",
            "price": 30.0,
            "variants": variants,
        }
        data.update(overrides)
        return StagingParent(**data)


def make_snapshot(rows: list[CatalogRow], shops: Optional[list[str]] = None, **overrides) -> CatalogSnapshot:
    data = {
        "rows": [],
        "options": {"categories": [], "shops": shops or []},
    }
    data.update(overrides)
    snapshot = CatalogSnapshot(**data)
    return snapshot.model_copy(update={"rows": rows})
