"""
Admin product endpoints: catalogue listing, creation and partial update.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from healthle.api.dependencies import AdminUser, DatabaseSession
from healthle.core.errors import error_detail
from healthle.models.product import Product
from healthle.repositories.products import ProductRepository
from healthle.repositories.vendors import VendorRepository
from healthle.schemas.admin import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/products", tags=["admin-products"])

PRODUCT_NOT_FOUND = "商品が見つかりません"


def product_dict(product: Product) -> Dict[str, Any]:
    data = product.to_dict()
    data["vendor_name"] = product.vendor.vendor_name if product.vendor else None
    return data


@router.get("")
async def list_products(db: DatabaseSession, admin: AdminUser):
    """All products, newest first."""
    products = await ProductRepository(db).list_products()
    return [product_dict(product) for product in products]


@router.post("")
async def create_product(request: ProductCreate, db: DatabaseSession, admin: AdminUser):
    """
    Create a product for a vendor.

    Raises:
        HTTPException 400: vendor_id missing or unknown
        HTTPException 500: Insert failed
    """
    if not request.vendor_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="出店者の選択は必須です")
    if not await VendorRepository(db).exists(request.vendor_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="指定された出店者が存在しません")

    try:
        product = await ProductRepository(db).create(request.model_dump())
    except SQLAlchemyError as e:
        logger.error(f"Failed to create product: {e}", extra={"vendor_id": request.vendor_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("商品の作成に失敗しました", e),
        )

    logger.info("Product created", extra={"product_id": product.id, "vendor_id": product.vendor_id})
    return product_dict(product)


@router.get("/{product_id}")
async def get_product(product_id: str, db: DatabaseSession, admin: AdminUser):
    product = await ProductRepository(db).get(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PRODUCT_NOT_FOUND)
    return product_dict(product)


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    request: ProductUpdate,
    db: DatabaseSession,
    admin: AdminUser,
):
    """Partial update: only fields present in the body are written."""
    repo = ProductRepository(db)
    product = await repo.get(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PRODUCT_NOT_FOUND)

    fields = request.model_dump(exclude_unset=True)
    if fields.get("vendor_id") and not await VendorRepository(db).exists(fields["vendor_id"]):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="指定された出店者が存在しません")

    try:
        product = await repo.update(product, fields)
    except SQLAlchemyError as e:
        logger.error(f"Failed to update product: {e}", extra={"product_id": product_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("商品の更新に失敗しました", e),
        )
    return product_dict(product)
