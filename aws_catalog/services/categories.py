"""
Category listing, ordering and deletion.
"""
from typing import Any, List

from sqlalchemy.orm import Session

from aws_catalog.database import crud
from aws_catalog.database.models import Category
from aws_catalog.errors import NotFoundError, ValidationError
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)


def category_to_dict(category: Category, service_count: int = 0) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "color": category.color,
        "sortOrder": category.sort_order,
        "serviceCount": service_count,
        "createdAt": category.created_at,
        "updatedAt": category.updated_at,
    }


def list_categories(session: Session) -> List[dict]:
    """All categories in display order (sort_order, then name) with service counts."""
    counts = crud.get_service_counts_by_category(session)
    return [
        category_to_dict(category, counts.get(category.id, 0))
        for category in crud.get_all_categories_sorted(session)
    ]


def reorder_categories(session: Session, category_orders: Any) -> List[dict]:
    """
    Apply a new display order.

    Args:
        session: Database session
        category_orders: List of {"id": ...} entries; each category's
            sort_order becomes its index in the list

    Returns:
        All categories in the new display order

    Raises:
        ValidationError: INVALID_REQUEST_FORMAT if the payload is not a list of
            {"id": str} entries, INVALID_CATEGORY_IDS if any ID is unknown
    """
    if not isinstance(category_orders, list) or not all(
        isinstance(entry, dict) and isinstance(entry.get("id"), str) for entry in category_orders
    ):
        raise ValidationError(
            message="カテゴリの並び順は配列で指定してください。",
            details={"received": type(category_orders).__name__},
            code="INVALID_REQUEST_FORMAT",
        )

    category_ids = [entry["id"] for entry in category_orders]
    found_ids = {category.id for category in crud.get_categories_by_ids(session, category_ids)}
    if len(set(category_ids)) != len(category_ids) or found_ids != set(category_ids):
        raise ValidationError(
            message="無効なカテゴリIDが含まれています。",
            details={"provided": category_ids, "found": sorted(found_ids)},
            code="INVALID_CATEGORY_IDS",
        )

    crud.set_category_sort_orders(session, category_ids)
    logger.info(f"Reordered {len(category_ids)} categories")
    return list_categories(session)


def delete_category(session: Session, category_id: str) -> None:
    """
    Delete a category without services.

    Raises:
        NotFoundError: CATEGORY_NOT_FOUND
        ValidationError: CATEGORY_HAS_SERVICES while services reference it
    """
    category = crud.get_category_by_id(session, category_id)
    if not category:
        raise NotFoundError(
            message="指定されたカテゴリが見つかりません。",
            details={"categoryId": category_id},
            code="CATEGORY_NOT_FOUND",
        )

    service_count = crud.get_service_counts_by_category(session).get(category.id, 0)
    if service_count:
        raise ValidationError(
            message="サービスが登録されているカテゴリは削除できません。",
            details={
                "categoryId": category.id,
                "categoryName": category.name,
                "serviceCount": service_count,
            },
            code="CATEGORY_HAS_SERVICES",
        )

    crud.delete_category(session, category)
