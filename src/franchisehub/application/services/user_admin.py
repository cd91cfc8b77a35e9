"""
用户管理（管理员）

修改角色与账号状态。两者是独立维度：改角色不会激活账号，激活账号也不会改变角色。
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from franchisehub.application import tables
from franchisehub.application.context import RequestContext
from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.application.retry import RetryPolicy, retry_read
from franchisehub.application.services.authorization import ADMIN_ROLES, require
from franchisehub.core.errors import ConcurrentModificationError, NotFoundError, ValidationError
from franchisehub.domain.identity import AccountStatus, Profile, Role
from franchisehub.domain.timeutil import format_ts, utcnow

logger = logging.getLogger(__name__)


class UserAdministration:
    def __init__(self, records: RecordStorePort, retry_policy: Optional[RetryPolicy] = None):
        self._records = records
        self._retry = retry_policy or RetryPolicy()

    def _load(self, user_id: str) -> Profile:
        row = retry_read(lambda: self._records.get(tables.PROFILES, user_id), self._retry, op="load_profile")
        if row is None:
            raise NotFoundError(message=f"Profile not found: {user_id}", context={"user_id": user_id})
        return Profile.from_record(row)

    def list_profiles(
        self,
        ctx: RequestContext,
        *,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
    ) -> List[Profile]:
        require(ctx, ADMIN_ROLES, mutating=False, action="list_profiles")
        filters = {}
        if role is not None:
            filters["role"] = Role(role).value
        if status is not None:
            filters["status"] = AccountStatus(status).value
        rows = retry_read(
            lambda: self._records.select(
                tables.PROFILES, filters=filters or None, order_by="created_at", descending=True
            ),
            self._retry,
            op="list_profiles",
        )
        return [Profile.from_record(r) for r in rows]

    def change_role(self, ctx: RequestContext, user_id: str, role: Union[Role, str]) -> Profile:
        require(ctx, ADMIN_ROLES, action="change_role")
        try:
            new_role = Role(role)
        except ValueError:
            raise ValidationError(message=f"未知角色: {role}", field_errors={"role": str(role)})
        current = self._load(user_id)
        if current.role == new_role:
            return current
        updated = self._write(user_id, {"role": new_role.value}, where={"role": current.role.value})
        logger.info(f"{ctx.user_id} changed role of {user_id}: {current.role.value} -> {new_role.value}")
        return updated

    def change_status(self, ctx: RequestContext, user_id: str, status: Union[AccountStatus, str]) -> Profile:
        require(ctx, ADMIN_ROLES, action="change_status")
        try:
            new_status = AccountStatus(status)
        except ValueError:
            raise ValidationError(message=f"未知账号状态: {status}", field_errors={"status": str(status)})
        current = self._load(user_id)
        if current.status == new_status:
            return current
        updated = self._write(user_id, {"status": new_status.value}, where={"status": current.status.value})
        logger.info(
            f"{ctx.user_id} changed status of {user_id}: {current.status.value} -> {new_status.value}"
        )
        return updated

    def _write(self, user_id: str, values: dict, *, where: dict) -> Profile:
        values = dict(values, updated_at=format_ts(utcnow()))
        row = self._records.update(tables.PROFILES, user_id, values, where=where)
        if row is None:
            self._load(user_id)
            raise ConcurrentModificationError(
                message="用户档案已被他人修改，请刷新后重试", context={"user_id": user_id}
            )
        return Profile.from_record(row)
