"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import and_, exists, func, or_, select

from idsync.adapters.sqlalchemy.mappings import (
    connected_system_object_table,
    connected_system_object_value_table,
    metaverse_object_table,
    metaverse_object_value_table,
    payload_columns,
    pending_export_table,
)
from idsync.domain.model import (
    AttributeDataType,
    ConnectedSystemObject,
    MetaverseObject,
    MetaverseObjectOrigin,
    PendingExport,
    SyncWatermark,
    TextValue,
)
from idsync.domain.ports import PagedResult
from idsync.domain.sync.errors import DuplicateConnectedSystemObjectError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy import ColumnElement
    from sqlalchemy.orm import Session

    from idsync.domain.model import AttributePayload


class SqlAlchemyRepository[TEntity]:
    """Shared add/delete helpers; deletes are flushed with the session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def add_all(self, entities: Iterable[TEntity]) -> None:
        self.session.add_all(list(entities))

    def delete_all(self, entities: Iterable[TEntity]) -> None:
        for entity in entities:
            self.session.delete(entity)


class SqlAlchemyConnectedSystemObjectRepository(SqlAlchemyRepository[ConnectedSystemObject]):
    def get(self, object_id: UUID) -> ConnectedSystemObject | None:
        return self.session.get(ConnectedSystemObject, object_id)

    def find_by_external_id(
        self,
        connected_system_id: int,
        object_type: str,
        external_id: str,
    ) -> ConnectedSystemObject | None:
        table = connected_system_object_table
        stmt = (
            select(ConnectedSystemObject)
            .where(table.c.connected_system_id == connected_system_id)
            .where(func.lower(table.c.object_type) == object_type.lower())
            .where(table.c.external_id == external_id)
        )
        matches = list(self.session.execute(stmt).scalars().all())
        if len(matches) > 1:
            raise DuplicateConnectedSystemObjectError(connected_system_id, object_type, external_id)
        return matches[0] if matches else None

    def find_by_external_id_any_type(
        self,
        connected_system_id: int,
        external_id: str,
    ) -> list[ConnectedSystemObject]:
        table = connected_system_object_table
        stmt = (
            select(ConnectedSystemObject)
            .where(table.c.connected_system_id == connected_system_id)
            .where(table.c.external_id == external_id)
            .order_by(table.c.object_type)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_for_system(
        self,
        connected_system_id: int,
        object_type: str | None = None,
    ) -> list[ConnectedSystemObject]:
        table = connected_system_object_table
        stmt = (
            select(ConnectedSystemObject)
            .where(table.c.connected_system_id == connected_system_id)
            .order_by(table.c.created, table.c.id)
        )
        if object_type is not None:
            stmt = stmt.where(func.lower(table.c.object_type) == object_type.lower())
        return list(self.session.execute(stmt).scalars().all())

    def list_with_unresolved_references(
        self,
        connected_system_id: int,
    ) -> list[ConnectedSystemObject]:
        table = connected_system_object_table
        values = connected_system_object_value_table
        unresolved = (
            select(values.c.connected_system_object_id)
            .where(values.c.value_type == AttributeDataType.REFERENCE)
            .where(values.c.value_reference_id.is_(None))
        )
        stmt = (
            select(ConnectedSystemObject)
            .where(table.c.connected_system_id == connected_system_id)
            .where(table.c.id.in_(unresolved))
            .order_by(table.c.created, table.c.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def count_modified_since(self, connected_system_id: int, watermark: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(connected_system_object_table)
            .where(_modified_since(connected_system_id, watermark))
        )
        return int(self.session.execute(stmt).scalar_one())

    def get_modified_since(
        self,
        connected_system_id: int,
        watermark: datetime,
        page: int,
        page_size: int,
    ) -> PagedResult[ConnectedSystemObject]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size start at 1")
        table = connected_system_object_table
        stmt = (
            select(ConnectedSystemObject)
            .where(_modified_since(connected_system_id, watermark))
            .order_by(table.c.created, table.c.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        results = list(self.session.execute(stmt).scalars().all())
        return PagedResult(
            results=results,
            page=page,
            page_size=page_size,
            total_results=self.count_modified_since(connected_system_id, watermark),
        )


def _modified_since(connected_system_id: int, watermark: datetime) -> ColumnElement[bool]:
    table = connected_system_object_table
    return and_(
        table.c.connected_system_id == connected_system_id,
        or_(
            table.c.created > watermark,
            and_(table.c.last_updated.is_not(None), table.c.last_updated > watermark),
        ),
    )


class SqlAlchemyMetaverseObjectRepository(SqlAlchemyRepository[MetaverseObject]):
    def get(self, object_id: UUID) -> MetaverseObject | None:
        return self.session.get(MetaverseObject, object_id)

    def find_by_attribute_value(
        self,
        object_type: str,
        attribute: str,
        value: AttributePayload,
        *,
        case_sensitive: bool = True,
    ) -> list[MetaverseObject]:
        table = metaverse_object_table
        values = metaverse_object_value_table
        stmt = (
            select(MetaverseObject)
            .join(values, values.c.metaverse_object_id == table.c.id)
            .where(func.lower(table.c.object_type) == object_type.lower())
            .where(func.lower(values.c.attribute) == attribute.lower())
            .where(_payload_matches(value, case_sensitive=case_sensitive))
            .distinct()
            .order_by(table.c.created, table.c.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_eligible_for_deletion(self, now: datetime, limit: int) -> list[MetaverseObject]:
        table = metaverse_object_table
        connected = exists().where(
            connected_system_object_table.c.metaverse_object_id == table.c.id
        )
        stmt = (
            select(MetaverseObject)
            .where(table.c.last_connector_disconnected_date.is_not(None))
            .where(table.c.origin == MetaverseObjectOrigin.PROJECTED)
            .where(
                or_(
                    table.c.deletion_eligible_date.is_(None),
                    table.c.deletion_eligible_date <= now,
                )
            )
            .where(or_(~connected, table.c.deletion_triggered_by_system_id.is_not(None)))
            .order_by(table.c.last_connector_disconnected_date, table.c.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())


def _payload_matches(value: AttributePayload, *, case_sensitive: bool) -> ColumnElement[bool]:
    columns = payload_columns(metaverse_object_value_table)
    if isinstance(value, TextValue) and not case_sensitive:
        return and_(
            columns[0] == value.DATA_TYPE,
            func.lower(metaverse_object_value_table.c.value_text) == value.value.lower(),
        )
    return and_(
        *(
            column == slot
            for column, slot in zip(columns, value.__composite_values__(), strict=True)
            if slot is not None
        )
    )


class SqlAlchemyPendingExportRepository(SqlAlchemyRepository[PendingExport]):
    def list_for_object(self, connected_system_object_id: UUID) -> list[PendingExport]:
        table = pending_export_table
        stmt = (
            select(PendingExport)
            .where(table.c.connected_system_object_id == connected_system_object_id)
            .order_by(table.c.created, table.c.id)
        )
        return list(self.session.execute(stmt).scalars().all())


class SqlAlchemyWatermarkRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, connected_system_id: int) -> datetime | None:
        watermark = self.session.get(SyncWatermark, connected_system_id)
        return watermark.completed_at if watermark is not None else None

    def set(self, connected_system_id: int, completed_at: datetime) -> None:
        watermark = self.session.get(SyncWatermark, connected_system_id)
        if watermark is None:
            self.session.add(
                SyncWatermark(connected_system_id=connected_system_id, completed_at=completed_at)
            )
            return
        watermark.completed_at = completed_at


if TYPE_CHECKING:
    from idsync.domain.ports.persistence import (
        ConnectedSystemObjectRepository,
        MetaverseObjectRepository,
        PendingExportRepository,
        WatermarkRepository,
    )

    _session_stub = cast("Session", object())
    _cso_repo: ConnectedSystemObjectRepository = SqlAlchemyConnectedSystemObjectRepository(
        _session_stub
    )
    _mvo_repo: MetaverseObjectRepository = SqlAlchemyMetaverseObjectRepository(_session_stub)
    _pe_repo: PendingExportRepository = SqlAlchemyPendingExportRepository(_session_stub)
    _wm_repo: WatermarkRepository = SqlAlchemyWatermarkRepository(_session_stub)
