"""
Comparison matrix builder.

Assembles the table of services (rows) x attributes (columns) that both the
/comparison/compare response and the CSV/PDF exports are built from.

Column layout:
- Five built-in columns, always first: name, description, category,
  memoCount, relationCount
- Then the comparison attributes: every default attribute plus any
  explicitly requested ones, default attributes first, then by name

Custom columns are keyed by attribute ID, so an attribute can never shadow
a built-in column. A service without a stored value for an attribute gets
None in that cell; every row has exactly the same keys.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from aws_catalog.database.crud import (
    get_attribute_values,
    get_comparison_attributes,
    get_memo_counts,
    get_relation_counts,
    get_services_by_ids,
)
from aws_catalog.database.models import ComparisonAttribute, Service
from aws_catalog.errors import LimitExceededError, NotFoundError, ValidationError
from aws_catalog.services.attribute_codec import decode_value
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)

# Product limit on services per comparison; checked before any query runs
MAX_COMPARISON_SERVICES = 5


@dataclass(frozen=True)
class ComparisonColumn:
    """One column of the comparison matrix.

    Attributes:
        key: Key of this column's cell in every row
        name: Attribute name (built-in key for built-in columns)
        display_name: Header text used in exports
        data_type: "TEXT", "NUMBER", "BOOLEAN" or "URL"
        is_default: Whether the column is shown without being requested
        is_builtin: True for the five synthesized service columns
        description: Attribute description, if any
        attribute_id: ComparisonAttribute ID for custom columns
    """
    key: str
    name: str
    display_name: str
    data_type: str
    is_default: bool = True
    is_builtin: bool = False
    description: Optional[str] = None
    attribute_id: Optional[str] = None

    @classmethod
    def from_attribute(cls, attribute: ComparisonAttribute) -> "ComparisonColumn":
        return cls(
            key=attribute.id,
            name=attribute.name,
            display_name=attribute.name,
            data_type=attribute.data_type,
            is_default=attribute.is_default,
            description=attribute.description,
            attribute_id=attribute.id,
        )

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "displayName": self.display_name,
            "dataType": self.data_type,
            "isDefault": self.is_default,
            "isBuiltin": self.is_builtin,
            "description": self.description,
            "attributeId": self.attribute_id,
        }


BUILTIN_COLUMNS = (
    ComparisonColumn("name", "name", "サービス名", "TEXT", is_builtin=True),
    ComparisonColumn("description", "description", "説明", "TEXT", is_builtin=True),
    ComparisonColumn("category", "category", "カテゴリ", "TEXT", is_builtin=True),
    ComparisonColumn("memoCount", "memoCount", "メモ数", "NUMBER", is_builtin=True),
    ComparisonColumn("relationCount", "relationCount", "関連数", "NUMBER", is_builtin=True),
)


@dataclass
class ComparisonRow:
    """One service row of the comparison matrix."""
    id: str
    name: str
    description: Optional[str]
    category: Dict[str, Any]
    cells: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "attributes": self.cells,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class ComparisonMatrix:
    """Services x attributes table, independent of output format."""
    services: List[ComparisonRow]
    attributes: List[ComparisonColumn]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def service_count(self) -> int:
        return len(self.services)

    @property
    def attribute_count(self) -> int:
        return len(self.attributes)

    def cell(self, row: ComparisonRow, column: ComparisonColumn) -> Any:
        return row.cells.get(column.key)

    def to_dict(self) -> dict:
        return {
            "services": [row.to_dict() for row in self.services],
            "attributes": [column.to_dict() for column in self.attributes],
            "metadata": {
                "serviceCount": self.service_count,
                "attributeCount": self.attribute_count,
                "generatedAt": self.generated_at,
            },
        }


def validate_comparison_request(service_ids: Any, attribute_ids: Any = None) -> List[str]:
    """
    Validate the raw comparison inputs.

    Checks run in a fixed order: shape of service_ids, the service limit,
    the ID values, then attribute_ids.

    Returns:
        service_ids with duplicates removed, in first-occurrence order

    Raises:
        ValidationError: INVALID_SERVICE_IDS or VALIDATION_ERROR
        LimitExceededError: TOO_MANY_SERVICES when more than 5 IDs are given
    """
    invalid_ids = ValidationError(
        message="サービスIDの配列が必要です。",
        details={"provided": service_ids},
        code="INVALID_SERVICE_IDS",
    )
    if not isinstance(service_ids, list) or not service_ids:
        raise invalid_ids

    if len(service_ids) > MAX_COMPARISON_SERVICES:
        raise LimitExceededError(
            details={"provided": len(service_ids), "maximum": MAX_COMPARISON_SERVICES},
        )

    if not all(isinstance(service_id, str) and service_id for service_id in service_ids):
        raise invalid_ids

    if attribute_ids is not None and (
        not isinstance(attribute_ids, list)
        or not all(isinstance(attribute_id, str) for attribute_id in attribute_ids)
    ):
        raise ValidationError(
            message="属性IDの配列が必要です。",
            details={"field": "attributeIds", "provided": attribute_ids},
        )

    return list(dict.fromkeys(service_ids))


def _category_summary(service: Service) -> Dict[str, Any]:
    category = service.category
    return {"id": category.id, "name": category.name, "color": category.color}


def build_comparison(
    session: Session,
    service_ids: Any,
    attribute_ids: Any = None,
    now: Optional[datetime] = None,
) -> ComparisonMatrix:
    """
    Build the comparison matrix for up to five services.

    Args:
        session: Database session
        service_ids: List of 1-5 service IDs
        attribute_ids: Optional list of extra attribute IDs to include
        now: Generation timestamp (defaults to current UTC time)

    Returns:
        ComparisonMatrix with rows in request order

    Raises:
        ValidationError: INVALID_SERVICE_IDS / VALIDATION_ERROR on malformed input
        LimitExceededError: TOO_MANY_SERVICES (details.maximum == 5)
        NotFoundError: SERVICES_NOT_FOUND with details.missingServiceIds
    """
    requested_ids = validate_comparison_request(service_ids, attribute_ids)

    services = {service.id: service for service in get_services_by_ids(session, requested_ids)}
    missing = [service_id for service_id in requested_ids if service_id not in services]
    if missing:
        raise NotFoundError(
            message="一部のサービスが見つかりません。",
            details={"missingServiceIds": missing},
            code="SERVICES_NOT_FOUND",
        )

    attributes = get_comparison_attributes(session, attribute_ids)
    columns = list(BUILTIN_COLUMNS) + [ComparisonColumn.from_attribute(a) for a in attributes]

    memo_counts = get_memo_counts(session, requested_ids)
    relation_counts = get_relation_counts(session, requested_ids)
    values = get_attribute_values(session, requested_ids, [a.id for a in attributes])

    rows = []
    for service_id in requested_ids:
        service = services[service_id]
        cells: Dict[str, Any] = {
            "name": service.name,
            "description": service.description or "",
            "category": service.category.name,
            "memoCount": memo_counts[service_id],
            "relationCount": relation_counts[service_id],
        }
        for attribute in attributes:
            stored = values.get((service_id, attribute.id))
            cells[attribute.id] = (
                decode_value(attribute.data_type, stored.value) if stored is not None else None
            )

        rows.append(ComparisonRow(
            id=service.id,
            name=service.name,
            description=service.description,
            category=_category_summary(service),
            cells=cells,
            created_at=service.created_at,
            updated_at=service.updated_at,
        ))

    matrix = ComparisonMatrix(
        services=rows,
        attributes=columns,
        generated_at=now or datetime.now(timezone.utc),
    )
    logger.info(
        f"Built comparison: {matrix.service_count} services x {matrix.attribute_count} attributes"
    )
    return matrix
