from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type

from sqlalchemy import asc, delete, desc, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.types import DateTime

from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.core.errors import DependencyFailureError, UniqueViolationError, ValidationError
from franchisehub.domain.timeutil import new_id, parse_ts
from franchisehub.infrastructure.stores.models import TABLE_MODELS, Base
from franchisehub.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)

_MULTI = (list, tuple, set, frozenset)


def _to_db(value: Any) -> Any:
    # SQLite 的 DateTime 列不保存时区，统一转成 UTC 再落库
    ts = parse_ts(value)
    if ts is None:
        return None
    return ts.astimezone(timezone.utc)


def _from_db(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


class SqlAlchemyRecordStore(RecordStorePort):
    """
    RecordStorePort over SQLAlchemy (SQLite by default).

    - 每张表有自增 seq 作为物理主键，保证"插入顺序"可排序；对外只暴露 id
    - update(where=...) 是单条 UPDATE ... WHERE id=? AND ...，按 rowcount 判断是否命中
    - IntegrityError -> UniqueViolationError；连接/执行失败 -> DependencyFailureError
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True, echo: bool = False):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url, echo=echo)
        if auto_create_schema:
            # Local dev/tests. In production, prefer Alembic migrations.
            Base.metadata.create_all(self._provider.engine)

    # ---- helpers ----

    def _model(self, table: str) -> Type[Base]:
        model = TABLE_MODELS.get(table)
        if model is None:
            raise ValidationError(message=f"Unknown table: {table}", context={"table": table})
        return model

    def _column(self, model: Type[Base], name: str):
        column = model.__table__.columns.get(name)
        if column is None or name == "seq":
            raise ValidationError(
                message=f"Unknown field {name} on {model.__tablename__}",
                context={"table": model.__tablename__, "field": name},
            )
        return column

    def _coerce(self, model: Type[Base], values: Mapping[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, value in values.items():
            column = self._column(model, key)
            out[key] = _to_db(value) if isinstance(column.type, DateTime) else value
        return out

    def _to_record(self, model: Type[Base], obj: Any) -> Dict[str, Any]:
        return {
            c.name: _from_db(getattr(obj, c.name))
            for c in model.__table__.columns
            if c.name != "seq"
        }

    def _conditions(self, model: Type[Base], filters: Optional[Mapping[str, Any]]):
        conds = []
        for key, value in (filters or {}).items():
            column = self._column(model, key)
            if isinstance(value, _MULTI):
                values = [_to_db(v) if isinstance(column.type, DateTime) else v for v in value]
                conds.append(column.in_(values))
            elif value is None:
                conds.append(column.is_(None))
            else:
                conds.append(column == (_to_db(value) if isinstance(column.type, DateTime) else value))
        return conds

    def _wrap(self, op: str, table: str, e: Exception) -> Exception:
        if isinstance(e, IntegrityError):
            return UniqueViolationError(
                message=f"{table}: unique constraint violated",
                context={"table": table, "op": op, "detail": str(e.orig)},
            )
        logger.error(f"record store {op} on {table} failed: {e}")
        return DependencyFailureError(
            message=f"Record store unavailable ({op} {table})",
            context={"table": table, "op": op, "detail": str(e)},
        )

    # ---- RecordStorePort ----

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        data = dict(record)
        data["id"] = str(data.get("id") or new_id())
        obj = model(**self._coerce(model, data))
        try:
            with self._provider.session() as session:
                session.add(obj)
                session.commit()
                session.refresh(obj)
                return self._to_record(model, obj)
        except (IntegrityError, OperationalError, DBAPIError) as e:
            raise self._wrap("insert", table, e) from e

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        model = self._model(table)
        try:
            with self._provider.session() as session:
                obj = session.execute(select(model).where(model.id == record_id)).scalar_one_or_none()
                return self._to_record(model, obj) if obj is not None else None
        except (OperationalError, DBAPIError) as e:
            raise self._wrap("get", table, e) from e

    def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        stmt = select(model).where(*self._conditions(model, filters))
        if order_by:
            column = self._column(model, order_by)
            stmt = stmt.order_by(desc(column) if descending else asc(column), asc(model.seq))
        else:
            stmt = stmt.order_by(asc(model.seq))
        if limit is not None:
            stmt = stmt.limit(int(limit))
        try:
            with self._provider.session() as session:
                return [self._to_record(model, obj) for obj in session.execute(stmt).scalars()]
        except (OperationalError, DBAPIError) as e:
            raise self._wrap("select", table, e) from e

    def update(
        self,
        table: str,
        record_id: str,
        values: Mapping[str, Any],
        *,
        where: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        model = self._model(table)
        changes = self._coerce(model, {k: v for k, v in values.items() if k != "id"})
        stmt = (
            update(model)
            .where(model.id == record_id, *self._conditions(model, where))
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        try:
            with self._provider.session() as session:
                result = session.execute(stmt)
                if result.rowcount == 0:
                    session.rollback()
                    return None
                session.commit()
                obj = session.execute(select(model).where(model.id == record_id)).scalar_one_or_none()
                return self._to_record(model, obj) if obj is not None else None
        except (IntegrityError, OperationalError, DBAPIError) as e:
            raise self._wrap("update", table, e) from e

    def delete(self, table: str, record_id: str) -> bool:
        model = self._model(table)
        try:
            with self._provider.session() as session:
                result = session.execute(delete(model).where(model.id == record_id))
                session.commit()
                return bool(result.rowcount)
        except (OperationalError, DBAPIError) as e:
            raise self._wrap("delete", table, e) from e

    def close(self) -> None:
        try:
            self._provider.dispose()
        except SQLAlchemyError as e:
            logger.debug(f"record store dispose failed: {e}")
