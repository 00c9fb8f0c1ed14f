"""
Product repository for catalogue CRUD operations.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.base import utc_now_iso
from healthle.models.product import Product

PRODUCT_FIELDS = (
    "vendor_id",
    "name",
    "description",
    "category",
    "price",
    "status",
    "purchase_limit",
    "questionnaire_required",
    "image_url",
)


class ProductRepository:
    """
    Repository for product data access.

    Products load their vendor eagerly (joined), so rows returned here
    can be serialized with the vendor name outside the session.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, product_id: str) -> Optional[Product]:
        result = await self.session.execute(select(Product).where(Product.id == product_id))
        return result.unique().scalar_one_or_none()

    async def list_products(self, vendor_id: Optional[str] = None) -> list[Product]:
        """Products newest first, optionally for one vendor."""
        stmt = select(Product).order_by(Product.created_at.desc())
        if vendor_id is not None:
            stmt = stmt.where(Product.vendor_id == vendor_id)
        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())

    async def create(self, fields: Dict[str, Any]) -> Product:
        product = Product(**{k: v for k, v in fields.items() if k in PRODUCT_FIELDS and v is not None})
        self.session.add(product)
        await self.session.flush()
        # Refresh runs the joined vendor load
        await self.session.refresh(product)
        return product

    async def update(self, product: Product, fields: Dict[str, Any]) -> Product:
        """Partial update: only keys present in ``fields`` are written."""
        for key, value in fields.items():
            if key in PRODUCT_FIELDS:
                setattr(product, key, value)
        product.updated_at = utc_now_iso()
        await self.session.flush()
        await self.session.refresh(product)
        return product
