"""
Database CRUD Operations for the AWS Service Catalog.

Provides functions for:
- Category queries, ordering and seeding
- Service lookup, free-text candidate queries and aggregate counts
- Memo and relation creation (seeding and tests)
- Comparison attribute definitions and value upserts

These functions only talk to the database. Validation and error reporting
live in the services package.
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, joinedload

from aws_catalog.database.models import (
    Category,
    ComparisonAttribute,
    Memo,
    Relation,
    Service,
    ServiceAttributeValue,
    generate_id,
    utc_now,
)
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)


# Predefined categories created on first start
DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    {"name": "Compute", "description": "コンピューティングサービス - EC2、Lambda、ECS等", "color": "#FF6B6B"},
    {"name": "Storage", "description": "ストレージサービス - S3、EBS、EFS等", "color": "#4ECDC4"},
    {"name": "Network", "description": "ネットワークサービス - VPC、CloudFront、Route53等", "color": "#45B7D1"},
    {"name": "Security", "description": "セキュリティサービス - IAM、KMS、WAF等", "color": "#96CEB4"},
    {"name": "ML", "description": "機械学習サービス - SageMaker、Rekognition、Comprehend等", "color": "#FFEAA7"},
    {"name": "Database", "description": "データベースサービス - RDS、DynamoDB、ElastiCache等", "color": "#DDA0DD"},
    {"name": "Analytics", "description": "分析サービス - Redshift、Athena、QuickSight等", "color": "#98D8C8"},
    {"name": "Developer Tools", "description": "開発者ツール - CodeCommit、CodeBuild、CodeDeploy等", "color": "#F7DC6F"},
    {"name": "Management", "description": "管理・監視サービス - CloudWatch、CloudTrail、Config等", "color": "#BB8FCE"},
    {"name": "Integration", "description": "統合サービス - SQS、SNS、EventBridge等", "color": "#85C1E9"},
]

# Default comparison attributes, always included in comparisons
DEFAULT_ATTRIBUTES: List[Dict[str, str]] = [
    {"name": "料金モデル", "description": "サービスの料金体系（従量課金、定額等）"},
    {"name": "ユースケース", "description": "主な利用シーン・用途"},
    {"name": "制限", "description": "サービスの制限事項・上限"},
    {"name": "リージョン対応", "description": "利用可能なAWSリージョン"},
    {"name": "SLA", "description": "サービスレベル合意（可用性等）"},
    {"name": "最大スループット", "description": "最大処理能力・スループット"},
    {"name": "セキュリティ機能", "description": "提供されるセキュリティ機能"},
    {"name": "統合サービス", "description": "他のAWSサービスとの統合"},
]


# =============================================================================
# Category Operations
# =============================================================================


def get_category_by_id(session: Session, category_id: str) -> Optional[Category]:
    """
    Get a category by ID.

    Args:
        session: Database session
        category_id: Category ID

    Returns:
        Category if found, None otherwise
    """
    return session.query(Category).filter(Category.id == category_id).first()


def get_category_by_name(session: Session, name: str) -> Optional[Category]:
    """Get a category by its exact name."""
    return session.query(Category).filter(Category.name == name).first()


def get_categories_by_ids(session: Session, category_ids: Iterable[str]) -> List[Category]:
    """Get all categories whose ID is in category_ids (unordered)."""
    ids = list(category_ids)
    if not ids:
        return []
    return session.query(Category).filter(Category.id.in_(ids)).all()


def get_all_categories_sorted(session: Session) -> List[Category]:
    """
    Get all categories sorted by sort_order, then name.

    Args:
        session: Database session

    Returns:
        List of all Category records in display order
    """
    return session.query(Category).order_by(Category.sort_order, Category.name).all()


def get_service_counts_by_category(session: Session) -> Dict[str, int]:
    """
    Count services per category.

    Returns:
        Mapping of category ID to number of services (categories without
        services are absent)
    """
    rows = (
        session.query(Service.category_id, func.count(Service.id))
        .group_by(Service.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


def create_category(
    session: Session,
    name: str,
    description: Optional[str] = None,
    color: Optional[str] = None,
    sort_order: Optional[int] = None,
) -> Category:
    """
    Create a new category, appended to the end of the display order
    unless sort_order is given.
    """
    if sort_order is None:
        sort_order = session.query(Category).count()
    category = Category(name=name, description=description, color=color, sort_order=sort_order)
    session.add(category)
    session.commit()
    session.refresh(category)

    logger.info(f"Created category: {name}")
    return category


def set_category_sort_orders(session: Session, category_ids: Sequence[str]) -> None:
    """
    Set sort_order of each category to its index in category_ids.

    All updates are committed together; on any failure the whole batch is
    rolled back and the exception propagates.
    """
    now = utc_now()
    try:
        for index, category_id in enumerate(category_ids):
            session.execute(
                update(Category)
                .where(Category.id == category_id)
                .values(sort_order=index, updated_at=now)
            )
        session.commit()
    except Exception:
        session.rollback()
        raise
    # Bulk updates bypass the identity map
    session.expire_all()


def delete_category(session: Session, category: Category) -> None:
    """Delete a category that has no services."""
    name = category.name
    session.delete(category)
    session.commit()
    logger.info(f"Deleted category '{name}'")


def ensure_default_categories(session: Session) -> List[Category]:
    """
    Create the predefined categories that do not exist yet.

    Returns:
        List of newly created categories (empty if all existed)
    """
    created = []
    for definition in DEFAULT_CATEGORIES:
        if get_category_by_name(session, definition["name"]):
            continue
        created.append(create_category(session, **definition))
    return created


# =============================================================================
# Service Operations
# =============================================================================


def get_service_by_id(session: Session, service_id: str) -> Optional[Service]:
    """
    Get a service by ID.

    Args:
        session: Database session
        service_id: Service ID

    Returns:
        Service if found, None otherwise
    """
    return session.query(Service).filter(Service.id == service_id).first()


def get_services_by_ids(session: Session, service_ids: Iterable[str]) -> List[Service]:
    """
    Get all services whose ID is in service_ids, in one query.

    Categories are loaded eagerly. The result is unordered; IDs that do not
    exist are simply absent.
    """
    ids = list(service_ids)
    if not ids:
        return []
    return (
        session.query(Service)
        .options(joinedload(Service.category))
        .filter(Service.id.in_(ids))
        .all()
    )


def create_service(
    session: Session,
    name: str,
    category_id: str,
    description: Optional[str] = None,
) -> Service:
    """Create a new service in the given category."""
    service = Service(name=name, category_id=category_id, description=description)
    session.add(service)
    session.commit()
    session.refresh(service)

    logger.info(f"Created service: {name}")
    return service


def get_memo_counts(session: Session, service_ids: Iterable[str]) -> Dict[str, int]:
    """
    Count all memos for each service.

    Returns:
        Mapping of service ID to memo count; every requested ID is present
    """
    ids = list(service_ids)
    counts = {service_id: 0 for service_id in ids}
    if not ids:
        return counts
    rows = (
        session.query(Memo.service_id, func.count(Memo.id))
        .filter(Memo.service_id.in_(ids))
        .group_by(Memo.service_id)
        .all()
    )
    counts.update({service_id: count for service_id, count in rows})
    return counts


def get_relation_counts(session: Session, service_ids: Iterable[str]) -> Dict[str, int]:
    """
    Count relations touching each service (outgoing + incoming).

    Returns:
        Mapping of service ID to relation count; every requested ID is present
    """
    ids = list(service_ids)
    counts = {service_id: 0 for service_id in ids}
    if not ids:
        return counts

    for column in (Relation.from_service_id, Relation.to_service_id):
        rows = (
            session.query(column, func.count(Relation.id))
            .filter(column.in_(ids))
            .group_by(column)
            .all()
        )
        for service_id, count in rows:
            counts[service_id] += count
    return counts


def _memo_matches(term: str):
    """SQL condition: memo content or title contains term, case-insensitive."""
    return or_(
        Memo.content.icontains(term, autoescape=True),
        Memo.title.icontains(term, autoescape=True),
    )


def search_services(
    session: Session,
    term: str,
    category_id: Optional[str] = None,
) -> List[Service]:
    """
    Find services whose name, description or any memo contains term.

    Matching is a case-insensitive substring match; LIKE wildcards in term
    are escaped. Results are ordered by name, then most recently updated.

    Args:
        session: Database session
        term: Trimmed, non-empty search text
        category_id: Optional category restriction

    Returns:
        List of matching Service records (categories loaded eagerly)
    """
    query = (
        session.query(Service)
        .options(joinedload(Service.category))
        .filter(
            or_(
                Service.name.icontains(term, autoescape=True),
                Service.description.icontains(term, autoescape=True),
                Service.memos.any(_memo_matches(term)),
            )
        )
    )
    if category_id:
        query = query.filter(Service.category_id == category_id)

    return query.order_by(Service.name.asc(), Service.updated_at.desc()).all()


def get_matching_memos(
    session: Session,
    service_ids: Iterable[str],
    term: str,
    limit_per_service: int = 3,
) -> Dict[str, List[Memo]]:
    """
    Get the most recent memos matching term for each service.

    Returns:
        Mapping of service ID to at most limit_per_service memos, newest
        first; every requested ID is present
    """
    ids = list(service_ids)
    grouped: Dict[str, List[Memo]] = {service_id: [] for service_id in ids}
    if not ids:
        return grouped

    memos = (
        session.query(Memo)
        .filter(Memo.service_id.in_(ids), _memo_matches(term))
        .order_by(Memo.created_at.desc(), Memo.id)
        .all()
    )
    for memo in memos:
        bucket = grouped[memo.service_id]
        if len(bucket) < limit_per_service:
            bucket.append(memo)
    return grouped


def get_popular_services(session: Session, limit: int = 5) -> List[Service]:
    """
    Get the services with the most memos, most recently updated first on ties.

    Args:
        session: Database session
        limit: Maximum number of services

    Returns:
        List of up to limit Service records
    """
    memo_count = func.count(Memo.id)
    return (
        session.query(Service)
        .options(joinedload(Service.category))
        .outerjoin(Memo, Memo.service_id == Service.id)
        .group_by(Service.id)
        .order_by(memo_count.desc(), Service.updated_at.desc())
        .limit(limit)
        .all()
    )


# =============================================================================
# Memo / Relation Operations
# =============================================================================


def create_memo(
    session: Session,
    service_id: str,
    content: str,
    memo_type: str = "TEXT",
    title: Optional[str] = None,
) -> Memo:
    """Create a memo for a service."""
    memo = Memo(service_id=service_id, content=content, type=memo_type, title=title)
    session.add(memo)
    session.commit()
    session.refresh(memo)
    return memo


def create_relation(
    session: Session,
    from_service_id: str,
    to_service_id: str,
    relation_type: str = "INTEGRATES_WITH",
    description: Optional[str] = None,
) -> Relation:
    """Create a directed relation between two services."""
    relation = Relation(
        from_service_id=from_service_id,
        to_service_id=to_service_id,
        type=relation_type,
        description=description,
    )
    session.add(relation)
    session.commit()
    session.refresh(relation)
    return relation


# =============================================================================
# Comparison Attribute Operations
# =============================================================================


def get_attribute_by_id(session: Session, attribute_id: str) -> Optional[ComparisonAttribute]:
    """
    Get a comparison attribute by ID.

    Returns:
        ComparisonAttribute if found, None otherwise
    """
    return session.query(ComparisonAttribute).filter(ComparisonAttribute.id == attribute_id).first()


def get_attribute_by_name(session: Session, name: str) -> Optional[ComparisonAttribute]:
    """
    Get a comparison attribute by exact (case-sensitive) name.

    Returns:
        ComparisonAttribute if found, None otherwise
    """
    return session.query(ComparisonAttribute).filter(ComparisonAttribute.name == name).first()


def get_all_attributes_sorted(session: Session) -> List[ComparisonAttribute]:
    """
    Get all comparison attributes, default attributes first, then by name.
    """
    return (
        session.query(ComparisonAttribute)
        .order_by(ComparisonAttribute.is_default.desc(), ComparisonAttribute.name.asc())
        .all()
    )


def get_comparison_attributes(
    session: Session,
    attribute_ids: Optional[Sequence[str]] = None,
) -> List[ComparisonAttribute]:
    """
    Get the attributes to include in a comparison.

    Args:
        session: Database session
        attribute_ids: Explicitly requested attribute IDs, or None

    Returns:
        Default attributes plus the requested ones (each attribute once),
        default attributes first, then by name. Unknown IDs are ignored.
    """
    condition = ComparisonAttribute.is_default.is_(True)
    if attribute_ids:
        condition = or_(condition, ComparisonAttribute.id.in_(list(attribute_ids)))
    return (
        session.query(ComparisonAttribute)
        .filter(condition)
        .order_by(ComparisonAttribute.is_default.desc(), ComparisonAttribute.name.asc())
        .all()
    )


def get_attribute_value_counts(session: Session) -> Dict[str, int]:
    """Count stored values per attribute ID (attributes without values are absent)."""
    rows = (
        session.query(ServiceAttributeValue.attribute_id, func.count(ServiceAttributeValue.id))
        .group_by(ServiceAttributeValue.attribute_id)
        .all()
    )
    return {attribute_id: count for attribute_id, count in rows}


def create_attribute(
    session: Session,
    name: str,
    data_type: str,
    description: Optional[str] = None,
    is_default: bool = False,
) -> ComparisonAttribute:
    """
    Create a comparison attribute.

    Args:
        session: Database session
        name: Unique attribute name
        data_type: "TEXT", "NUMBER", "BOOLEAN" or "URL"
        description: Optional description
        is_default: True only for seeded default attributes

    Returns:
        Newly created ComparisonAttribute
    """
    attribute = ComparisonAttribute(
        name=name,
        description=description,
        data_type=data_type,
        is_default=is_default,
    )
    session.add(attribute)
    session.commit()
    session.refresh(attribute)

    logger.info(f"Created comparison attribute: {name} ({data_type})")
    return attribute


def ensure_default_attributes(session: Session) -> List[ComparisonAttribute]:
    """
    Create the default TEXT comparison attributes that do not exist yet.

    Returns:
        List of newly created attributes (empty if all existed)
    """
    created = []
    for definition in DEFAULT_ATTRIBUTES:
        if get_attribute_by_name(session, definition["name"]):
            continue
        created.append(
            create_attribute(
                session,
                name=definition["name"],
                description=definition["description"],
                data_type="TEXT",
                is_default=True,
            )
        )
    return created


def upsert_attribute_value(
    session: Session,
    service_id: str,
    attribute_id: str,
    stored_value: str,
) -> ServiceAttributeValue:
    """
    Insert or overwrite the value of one attribute for one service.

    Uses a single INSERT ... ON CONFLICT DO UPDATE statement keyed by
    (service_id, attribute_id), so concurrent writers end with the last
    write and never hit a uniqueness error.

    Args:
        session: Database session
        service_id: Existing service ID
        attribute_id: Existing attribute ID
        stored_value: Encoded value (see attribute_codec.encode_value)

    Returns:
        The stored ServiceAttributeValue row
    """
    now = utc_now()
    stmt = sqlite_insert(ServiceAttributeValue).values(
        id=generate_id(),
        service_id=service_id,
        attribute_id=attribute_id,
        value=stored_value,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["service_id", "attribute_id"],
        set_={"value": stored_value, "updated_at": now},
    )
    session.execute(stmt)
    session.commit()

    return (
        session.query(ServiceAttributeValue)
        .options(
            joinedload(ServiceAttributeValue.service),
            joinedload(ServiceAttributeValue.attribute),
        )
        .filter(
            ServiceAttributeValue.service_id == service_id,
            ServiceAttributeValue.attribute_id == attribute_id,
        )
        .populate_existing()
        .one()
    )


def get_attribute_values(
    session: Session,
    service_ids: Iterable[str],
    attribute_ids: Iterable[str],
) -> Dict[Tuple[str, str], ServiceAttributeValue]:
    """
    Get stored values for every (service, attribute) pair that has one.

    Returns:
        Mapping of (service_id, attribute_id) to ServiceAttributeValue
    """
    s_ids = list(service_ids)
    a_ids = list(attribute_ids)
    if not s_ids or not a_ids:
        return {}
    rows = (
        session.query(ServiceAttributeValue)
        .filter(
            ServiceAttributeValue.service_id.in_(s_ids),
            ServiceAttributeValue.attribute_id.in_(a_ids),
        )
        .all()
    )
    return {(row.service_id, row.attribute_id): row for row in rows}

