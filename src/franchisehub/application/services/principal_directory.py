"""
Principal Directory

把已认证的调用方解析为稳定身份和带角色的档案。档案只在单个请求的
RequestContext 中缓存，不跨用户、不跨会话。
"""

from __future__ import annotations

import logging
from typing import Optional

from franchisehub.application import tables
from franchisehub.application.context import RequestContext
from franchisehub.application.ports.identity_port import IdentityProviderPort
from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.application.retry import RetryPolicy, retry_read
from franchisehub.core.errors import (
    AuthorizationError,
    NotFoundError,
    ProfileMissingError,
    UniqueViolationError,
    ValidationError,
)
from franchisehub.domain.identity import AccountStatus, Principal, Profile, Role
from franchisehub.domain.timeutil import utcnow

logger = logging.getLogger(__name__)


class PrincipalDirectory:
    def __init__(self, records: RecordStorePort, retry_policy: Optional[RetryPolicy] = None):
        self._records = records
        self._retry = retry_policy or RetryPolicy()

    def resolve_current_principal(self, identity: IdentityProviderPort) -> Optional[Principal]:
        return identity.current_principal()

    def load_profile(self, principal_id: str) -> Profile:
        row = retry_read(lambda: self._records.get(tables.PROFILES, principal_id), self._retry, op="load_profile")
        if row is None:
            raise NotFoundError(message=f"Profile not found: {principal_id}", context={"user_id": principal_id})
        return Profile.from_record(row)

    def open_context(self, identity: IdentityProviderPort) -> RequestContext:
        """
        为当前请求构建上下文。

        未登录 -> AuthorizationError；已登录但无档案 -> ProfileMissingError（不猜默认角色）。
        """
        principal = self.resolve_current_principal(identity)
        if principal is None:
            raise AuthorizationError(message="请先登录")
        try:
            profile = self.load_profile(principal.id)
        except NotFoundError:
            logger.warning(f"authenticated principal {principal.id} has no profile")
            raise ProfileMissingError(
                message="当前用户没有档案记录",
                context={"user_id": principal.id},
            )
        return RequestContext(principal=principal, profile=profile)

    def register_profile(
        self,
        principal: Principal,
        full_name: str,
        *,
        phone: Optional[str] = None,
        region: Optional[str] = None,
    ) -> Profile:
        """注册：默认角色 applicant，默认状态 pending_activation，待管理员激活。"""
        full_name = (full_name or "").strip()
        if not full_name:
            raise ValidationError(message="请填写姓名", field_errors={"full_name": "必填"})
        now = utcnow()
        profile = Profile(
            id=principal.id,
            full_name=full_name,
            role=Role.APPLICANT,
            status=AccountStatus.PENDING_ACTIVATION,
            email=principal.email or None,
            phone=phone,
            region=region,
            created_at=now,
            updated_at=now,
        )
        try:
            row = self._records.insert(tables.PROFILES, profile.to_record())
        except UniqueViolationError:
            raise ValidationError(
                message="该账号已注册",
                field_errors={"id": "已存在"},
                context={"user_id": principal.id},
            )
        logger.info(f"registered profile {principal.id} as applicant (pending_activation)")
        return Profile.from_record(row)
