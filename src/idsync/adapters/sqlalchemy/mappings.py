"""SQLAlchemy mapping metadata for the idsync domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import composite, configure_mappers, relationship

from idsync.domain.model import (
    AttributeChangeType,
    AttributeDataType,
    ConnectedSystemObject,
    ConnectedSystemObjectAttributeValue,
    ConnectedSystemObjectStatus,
    JoinType,
    MetaverseObject,
    MetaverseObjectAttributeValue,
    MetaverseObjectOrigin,
    PendingExport,
    PendingExportAttributeChange,
    PendingExportChangeType,
    PendingExportStatus,
    SyncWatermark,
    payload_from_columns,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# one discriminator plus one column per payload slot, in ``__composite_values__`` order
PAYLOAD_COLUMN_NAMES = (
    "value_type",
    "value_text",
    "value_number",
    "value_datetime",
    "value_boolean",
    "value_guid",
    "value_binary",
    "value_reference_text",
    "value_reference_id",
)


def _payload_columns(*, nullable: bool) -> list[Column[object]]:
    return [
        Column("value_type", Enum(AttributeDataType, native_enum=False), nullable=nullable),
        Column("value_text", String, nullable=True),
        Column("value_number", BigInteger, nullable=True),
        Column("value_datetime", UTCDateTime, nullable=True),
        Column("value_boolean", Boolean, nullable=True),
        Column("value_guid", UUIDColumnType, nullable=True),
        Column("value_binary", LargeBinary, nullable=True),
        Column("value_reference_text", String, nullable=True),
        Column("value_reference_id", UUIDColumnType, nullable=True),
    ]


def payload_columns(table: Table) -> list[Column[object]]:
    return [table.c[name] for name in PAYLOAD_COLUMN_NAMES]


# Tables -----------------------------------------------------------------------

metaverse_object_table = Table(
    "metaverse_object",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("object_type", String, nullable=False, index=True),
    Column("origin", Enum(MetaverseObjectOrigin, native_enum=False), nullable=False),
    Column("created", UTCDateTime, nullable=False),
    Column("last_updated", UTCDateTime, nullable=True),
    Column("last_connector_disconnected_date", UTCDateTime, nullable=True),
    Column("deletion_eligible_date", UTCDateTime, nullable=True),
    Column("deletion_triggered_by_system_id", Integer, nullable=True),
)

metaverse_object_value_table = Table(
    "metaverse_object_value",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "metaverse_object_id",
        UUIDColumnType,
        ForeignKey("metaverse_object.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("attribute", String, nullable=False),
    Column("contributed_by_system_id", Integer, nullable=True),
    *_payload_columns(nullable=False),
    Index("ix_metaverse_object_value_lookup", "attribute", "value_text"),
)

connected_system_object_table = Table(
    "connected_system_object",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("connected_system_id", Integer, nullable=False),
    Column("object_type", String, nullable=False),
    Column("external_id_attribute", String, nullable=False),
    Column("external_id", String, nullable=False),
    Column("status", Enum(ConnectedSystemObjectStatus, native_enum=False), nullable=False),
    Column("join_type", Enum(JoinType, native_enum=False), nullable=False),
    Column(
        "metaverse_object_id",
        UUIDColumnType,
        ForeignKey("metaverse_object.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("date_joined", UTCDateTime, nullable=True),
    Column("created", UTCDateTime, nullable=False),
    Column("last_updated", UTCDateTime, nullable=True),
    UniqueConstraint("connected_system_id", "object_type", "external_id"),
    Index("ix_connected_system_object_paging", "connected_system_id", "created", "id"),
)

connected_system_object_value_table = Table(
    "connected_system_object_value",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "connected_system_object_id",
        UUIDColumnType,
        ForeignKey("connected_system_object.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("attribute", String, nullable=False),
    *_payload_columns(nullable=False),
)

pending_export_table = Table(
    "pending_export",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("connected_system_id", Integer, nullable=False),
    Column("connected_system_object_id", UUIDColumnType, nullable=True, index=True),
    Column("change_type", Enum(PendingExportChangeType, native_enum=False), nullable=False),
    Column("status", Enum(PendingExportStatus, native_enum=False), nullable=False),
    Column("error_count", Integer, nullable=False, default=0),
    Column("created", UTCDateTime, nullable=False),
)

pending_export_attribute_change_table = Table(
    "pending_export_attribute_change",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "pending_export_id",
        UUIDColumnType,
        ForeignKey("pending_export.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("attribute", String, nullable=False),
    Column("change_type", Enum(AttributeChangeType, native_enum=False), nullable=False),
    *_payload_columns(nullable=True),
)

sync_watermark_table = Table(
    "sync_watermark",
    mapper_registry.metadata,
    Column("connected_system_id", Integer, primary_key=True, autoincrement=False),
    Column("completed_at", UTCDateTime, nullable=False),
)


def _payload_composite(table: Table) -> orm.Composite[object]:
    return composite(payload_from_columns, *payload_columns(table))


@cache
def start_mappers() -> orm.registry:
    """Configure imperative mappings between domain entities and tables."""

    mapper_registry.map_imperatively(
        MetaverseObjectAttributeValue,
        metaverse_object_value_table,
        properties={"value": _payload_composite(metaverse_object_value_table)},
    )

    mapper_registry.map_imperatively(
        MetaverseObject,
        metaverse_object_table,
        properties={
            "_attribute_values": relationship(
                MetaverseObjectAttributeValue,
                cascade="all, delete-orphan",
                order_by=metaverse_object_value_table.c.id,
            ),
            "_connected_system_objects": relationship(
                ConnectedSystemObject,
                back_populates="_metaverse_object",
                order_by=connected_system_object_table.c.created,
            ),
        },
    )

    mapper_registry.map_imperatively(
        ConnectedSystemObjectAttributeValue,
        connected_system_object_value_table,
        properties={"value": _payload_composite(connected_system_object_value_table)},
    )

    mapper_registry.map_imperatively(
        ConnectedSystemObject,
        connected_system_object_table,
        properties={
            "_attribute_values": relationship(
                ConnectedSystemObjectAttributeValue,
                cascade="all, delete-orphan",
                order_by=connected_system_object_value_table.c.id,
            ),
            "_metaverse_object": relationship(
                MetaverseObject,
                back_populates="_connected_system_objects",
            ),
        },
    )

    mapper_registry.map_imperatively(
        PendingExportAttributeChange,
        pending_export_attribute_change_table,
        properties={"value": _payload_composite(pending_export_attribute_change_table)},
    )

    mapper_registry.map_imperatively(
        PendingExport,
        pending_export_table,
        properties={
            "_attribute_changes": relationship(
                PendingExportAttributeChange,
                cascade="all, delete-orphan",
                order_by=pending_export_attribute_change_table.c.id,
            ),
        },
    )

    mapper_registry.map_imperatively(SyncWatermark, sync_watermark_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
