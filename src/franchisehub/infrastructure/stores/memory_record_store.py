from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from franchisehub.application import tables
from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.core.errors import UniqueViolationError
from franchisehub.domain.timeutil import new_id, parse_ts

_MULTI = (list, tuple, set, frozenset)

# 与 SQL 模型保持一致的唯一约束（id 之外）
DEFAULT_UNIQUE_FIELDS: Dict[str, Tuple[str, ...]] = {
    tables.APPLICATIONS: ("open_application_key",),
    tables.SIGNED_CONTRACTS: ("application_id", "contract_number"),
}


def _matches(record: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
    for key, expected in (filters or {}).items():
        actual = record.get(key)
        if isinstance(expected, _MULTI):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def _sort_key(value: Any):
    # None 排在最前（与 SQLite 升序一致）；时间戳按时间而不是字符串比较
    if value is None:
        return (0, 0)
    if isinstance(value, str) and len(value) >= 19 and value[4:5] == "-" and value[10:11] == "T":
        try:
            return (1, parse_ts(value))
        except ValueError:
            pass
    return (1, value)


class InMemoryRecordStore(RecordStorePort):
    """
    Thread-safe in-memory RecordStorePort (tests/local dev).

    Records are kept per table in insertion order; everything handed out is a copy.
    """

    def __init__(self, unique_fields: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._unique = {
            t: tuple(fields)
            for t, fields in (DEFAULT_UNIQUE_FIELDS if unique_fields is None else unique_fields).items()
        }
        self._lock = threading.RLock()

    def _rows(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    def _check_unique(self, table: str, record: Mapping[str, Any], *, skip_id: Optional[str] = None) -> None:
        rows = self._rows(table)
        for field in self._unique.get(table, ()):
            value = record.get(field)
            if value is None:
                continue
            for rid, row in rows.items():
                if rid != skip_id and row.get(field) == value:
                    raise UniqueViolationError(
                        message=f"{table}: duplicate {field}",
                        context={"table": table, "field": field, "value": value},
                    )

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        data = copy.deepcopy(dict(record))
        data["id"] = str(data.get("id") or new_id())
        with self._lock:
            rows = self._rows(table)
            if data["id"] in rows:
                raise UniqueViolationError(
                    message=f"{table}: duplicate id", context={"table": table, "id": data["id"]}
                )
            self._check_unique(table, data)
            rows[data["id"]] = data
            return copy.deepcopy(data)

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows(table).get(record_id)
            return copy.deepcopy(row) if row is not None else None

    def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._rows(table).values() if _matches(r, filters)]
        if order_by:
            # sorted() 是稳定排序，reverse=True 时相等元素仍保持插入顺序
            rows = sorted(rows, key=lambda r: _sort_key(r.get(order_by)), reverse=descending)
        if limit is not None:
            rows = rows[: int(limit)]
        return rows

    def update(
        self,
        table: str,
        record_id: str,
        values: Mapping[str, Any],
        *,
        where: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows(table).get(record_id)
            if row is None or not _matches(row, where):
                return None
            merged = dict(row)
            merged.update(copy.deepcopy({k: v for k, v in values.items() if k != "id"}))
            self._check_unique(table, merged, skip_id=record_id)
            self._rows(table)[record_id] = merged
            return copy.deepcopy(merged)

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._rows(table).pop(record_id, None) is not None

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._rows(table))
