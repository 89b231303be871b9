"""
SQLAlchemy ORM models for the AWS Service Catalog.

Models:
- Category: Grouping of services (Compute, Storage, ...) with display order
- Service: An AWS service entry, owned by one category
- Memo: User notes attached to a service (searched, otherwise opaque here)
- Relation: Directed link between two services (counted for comparisons)
- ComparisonAttribute: Typed attribute definition used in comparisons
- ServiceAttributeValue: Encoded value of one attribute for one service

Naming Conventions:
- Tables: plural snake_case (categories, services, comparison_attributes)
- Columns: snake_case (category_id, data_type, created_at)
- Foreign keys: <singular>_id pattern (service_id, attribute_id)
- Primary keys: UUID4 strings generated at insert time
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from aws_catalog.database.connection import Base


MEMO_TYPES = ("TEXT", "LINK", "IMAGE")
RELATION_TYPES = ("INTEGRATES_WITH", "DEPENDS_ON", "ALTERNATIVE_TO")


def generate_id() -> str:
    """Generate a new primary key value."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    UUID4 string primary key plus created_at / updated_at (UTC), shared by
    every table.
    """

    id = Column(String(36), primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)


class Category(TimestampMixin, Base):
    """
    Service category.

    Attributes:
        name: Unique display name (e.g., "Compute")
        description: Optional description
        color: Optional display color (e.g., "#FF6B6B")
        sort_order: Position in category listings (lower = first)
    """

    __tablename__ = "categories"

    name = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False, index=True)

    # No cascade: deleting a category with services must fail
    services = relationship("Service", back_populates="category", passive_deletes="all")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}', sort_order={self.sort_order})>"


class Service(TimestampMixin, Base):
    """
    AWS service entry.

    Attributes:
        name: Globally unique service name (e.g., "Amazon EC2")
        description: Optional free-text description
        category_id: FK to the owning category
    """

    __tablename__ = "services"

    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    category_id = Column(
        String(36), ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    category = relationship("Category", back_populates="services")
    memos = relationship("Memo", back_populates="service", cascade="all, delete-orphan")
    attribute_values = relationship(
        "ServiceAttributeValue", back_populates="service", cascade="all, delete-orphan"
    )
    from_relations = relationship(
        "Relation",
        foreign_keys="Relation.from_service_id",
        back_populates="from_service",
        cascade="all, delete-orphan",
    )
    to_relations = relationship(
        "Relation",
        foreign_keys="Relation.to_service_id",
        back_populates="to_service",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}', category_id={self.category_id})>"


class Memo(TimestampMixin, Base):
    """
    Note attached to a service.

    Attributes:
        service_id: FK to the owning service
        type: "TEXT", "LINK" or "IMAGE"
        content: Memo body (text, URL or image path)
        title: Optional title
    """

    __tablename__ = "memos"
    __table_args__ = (
        CheckConstraint(
            "type IN ('TEXT', 'LINK', 'IMAGE')",
            name="check_memo_type_valid",
        ),
    )

    service_id = Column(
        String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(10), default="TEXT", nullable=False)
    content = Column(Text, nullable=False)
    title = Column(String(200), nullable=True)

    service = relationship("Service", back_populates="memos")

    def __repr__(self) -> str:
        return f"<Memo(id={self.id}, type='{self.type}', service_id={self.service_id})>"


class Relation(TimestampMixin, Base):
    """
    Directed relation between two services.

    Attributes:
        type: "INTEGRATES_WITH", "DEPENDS_ON" or "ALTERNATIVE_TO"
        from_service_id: FK to the source service
        to_service_id: FK to the target service
        description: Optional description
    """

    __tablename__ = "relations"
    __table_args__ = (
        CheckConstraint(
            "type IN ('INTEGRATES_WITH', 'DEPENDS_ON', 'ALTERNATIVE_TO')",
            name="check_relation_type_valid",
        ),
        UniqueConstraint("from_service_id", "to_service_id", "type", name="uq_relation"),
    )

    type = Column(String(20), nullable=False)
    from_service_id = Column(
        String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    to_service_id = Column(
        String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description = Column(Text, nullable=True)

    from_service = relationship(
        "Service", foreign_keys=[from_service_id], back_populates="from_relations"
    )
    to_service = relationship(
        "Service", foreign_keys=[to_service_id], back_populates="to_relations"
    )

    def __repr__(self) -> str:
        return (
            f"<Relation(id={self.id}, type='{self.type}', "
            f"from={self.from_service_id}, to={self.to_service_id})>"
        )


class ComparisonAttribute(TimestampMixin, Base):
    """
    Attribute definition used when comparing services.

    Attributes:
        name: Unique attribute name (case-sensitive)
        description: Optional description
        data_type: "TEXT", "NUMBER", "BOOLEAN" or "URL" (immutable after creation)
        is_default: True for attributes always shown in comparisons,
                    False for custom attributes the user opts into
    """

    __tablename__ = "comparison_attributes"
    __table_args__ = (
        CheckConstraint(
            "data_type IN ('TEXT', 'NUMBER', 'BOOLEAN', 'URL')",
            name="check_data_type_valid",
        ),
    )

    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    data_type = Column(String(10), default="TEXT", nullable=False)
    is_default = Column(Boolean, default=False, nullable=False, index=True)

    values = relationship(
        "ServiceAttributeValue", back_populates="attribute", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<ComparisonAttribute(id={self.id}, name='{self.name}', "
            f"data_type='{self.data_type}', is_default={self.is_default})>"
        )


class ServiceAttributeValue(TimestampMixin, Base):
    """
    Value of one comparison attribute for one service.

    Attributes:
        service_id: FK to the service
        attribute_id: FK to the comparison attribute
        value: JSON-encoded typed value, written by the attribute codec
    """

    __tablename__ = "service_attribute_values"
    __table_args__ = (
        UniqueConstraint("service_id", "attribute_id", name="uq_service_attribute"),
    )

    service_id = Column(
        String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attribute_id = Column(
        String(36),
        ForeignKey("comparison_attributes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value = Column(Text, nullable=False)

    service = relationship("Service", back_populates="attribute_values")
    attribute = relationship("ComparisonAttribute", back_populates="values")

    def __repr__(self) -> str:
        return (
            f"<ServiceAttributeValue(service_id={self.service_id}, "
            f"attribute_id={self.attribute_id}, value={self.value!r})>"
        )
