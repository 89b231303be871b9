"""
Comparison attribute store.

Validation and merge logic around comparison attribute definitions and the
per-(service, attribute) values:
- create_attribute: new custom attribute with a unique name and valid data type
- set_attribute_value: encode a raw value for the attribute's data type and
  upsert it (last write wins)
- list_attributes: all attributes, default ones first, then alphabetical
"""
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aws_catalog.database.crud import (
    create_attribute as insert_attribute,
    get_all_attributes_sorted,
    get_attribute_by_id,
    get_attribute_by_name,
    get_attribute_value_counts,
    get_service_by_id,
    upsert_attribute_value,
)
from aws_catalog.database.models import ComparisonAttribute, ServiceAttributeValue
from aws_catalog.errors import ConflictError, NotFoundError, ValidationError
from aws_catalog.services.attribute_codec import decode_value, encode_value, parse_data_type
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def attribute_to_dict(attribute: ComparisonAttribute, value_count: Optional[int] = None) -> dict:
    """
    Convert a ComparisonAttribute to its API representation.

    Args:
        attribute: ComparisonAttribute model instance
        value_count: Number of stored values, included when given

    Returns:
        Dict with camelCase keys
    """
    data = {
        "id": attribute.id,
        "name": attribute.name,
        "description": attribute.description,
        "dataType": attribute.data_type,
        "isDefault": attribute.is_default,
        "createdAt": attribute.created_at,
        "updatedAt": attribute.updated_at,
    }
    if value_count is not None:
        data["valueCount"] = value_count
    return data


def attribute_value_to_dict(row: ServiceAttributeValue) -> dict:
    """Convert a stored value row to its API representation with the decoded value."""
    return {
        "id": row.id,
        "serviceId": row.service_id,
        "attributeId": row.attribute_id,
        "value": decode_value(row.attribute.data_type, row.value),
        "service": {"id": row.service.id, "name": row.service.name},
        "attribute": {
            "id": row.attribute.id,
            "name": row.attribute.name,
            "dataType": row.attribute.data_type,
        },
        "createdAt": row.created_at,
        "updatedAt": row.updated_at,
    }


def list_attributes(session: Session) -> List[dict]:
    """
    List all comparison attributes, default attributes first, then by name.

    Each entry carries valueCount, the number of services with a stored value.
    """
    counts = get_attribute_value_counts(session)
    return [
        attribute_to_dict(attribute, value_count=counts.get(attribute.id, 0))
        for attribute in get_all_attributes_sorted(session)
    ]


def create_attribute(
    session: Session,
    name: Any,
    data_type: Any,
    description: Optional[str] = None,
) -> ComparisonAttribute:
    """
    Create a custom (non-default) comparison attribute.

    Args:
        session: Database session
        name: Attribute name, unique (case-sensitive)
        data_type: "TEXT", "NUMBER", "BOOLEAN" or "URL"
        description: Optional description

    Returns:
        The created ComparisonAttribute

    Raises:
        ValidationError: VALIDATION_ERROR if name or data_type is missing,
            INVALID_DATA_TYPE if data_type is not an enumerated type
        ConflictError: DUPLICATE_ATTRIBUTE_NAME if the name is taken
    """
    missing = [field for field, value in (("name", name), ("dataType", data_type)) if _is_blank(value)]
    if missing:
        raise ValidationError(
            message="必須フィールドが不足しています。",
            details={"missingFields": missing},
        )
    if not isinstance(name, str):
        raise ValidationError(
            message="属性名は文字列である必要があります。",
            details={"field": "name", "provided": name},
        )

    resolved_type = parse_data_type(data_type)

    duplicate = ConflictError(
        message="同じ名前の比較属性が既に存在します。",
        details={"attributeName": name},
        code="DUPLICATE_ATTRIBUTE_NAME",
    )
    if get_attribute_by_name(session, name):
        raise duplicate

    try:
        attribute = insert_attribute(
            session,
            name=name,
            data_type=resolved_type.value,
            description=description or None,
            is_default=False,
        )
    except IntegrityError:
        # Lost a race against a concurrent create with the same name
        session.rollback()
        raise duplicate

    return attribute


def set_attribute_value(
    session: Session,
    service_id: str,
    attribute_id: str,
    raw_value: Any,
) -> dict:
    """
    Validate, encode and upsert the value of one attribute for one service.

    Args:
        session: Database session
        service_id: ID of an existing service
        attribute_id: ID of an existing comparison attribute
        raw_value: Raw value from the request body

    Returns:
        API representation of the stored value, with the value decoded

    Raises:
        NotFoundError: SERVICE_NOT_FOUND or ATTRIBUTE_NOT_FOUND
        InvalidValueFormatError: If raw_value does not fit the data type
    """
    service = get_service_by_id(session, service_id)
    if not service:
        raise NotFoundError(
            message="指定されたサービスが見つかりません。",
            details={"serviceId": service_id},
            code="SERVICE_NOT_FOUND",
        )

    attribute = get_attribute_by_id(session, attribute_id)
    if not attribute:
        raise NotFoundError(
            message="指定された比較属性が見つかりません。",
            details={"attributeId": attribute_id},
            code="ATTRIBUTE_NOT_FOUND",
        )

    stored_value = encode_value(attribute.data_type, raw_value)
    row = upsert_attribute_value(session, service.id, attribute.id, stored_value)

    logger.info(
        f"Set attribute '{attribute.name}' ({attribute.data_type}) "
        f"for service '{service.name}' to {stored_value}"
    )
    return attribute_value_to_dict(row)
