"""
角色授权闸门

authorize() 是纯函数：只依赖传入的 profile、所需角色集合与操作类型，
不读取任何全局状态，所有服务入口都通过它做权限判定。

规则:
1. profile 为空 -> 拒绝
2. required_roles 非空且 profile.role 不在其中 -> 拒绝
3. 写操作要求 status == active；读操作可由调用方选择容忍 pending_activation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Dict, FrozenSet, Optional

from franchisehub.application.context import RequestContext
from franchisehub.core.errors import AuthorizationError, ProfileMissingError
from franchisehub.domain.identity import AccountStatus, Profile, Role

logger = logging.getLogger(__name__)


APPLICANT_ROLES: FrozenSet[Role] = frozenset({Role.APPLICANT})
REVIEWER_ROLES: FrozenSet[Role] = frozenset({Role.HQ_RECRUITER, Role.ADMIN})
TEMPLATE_MANAGER_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.HQ_RECRUITER})
ADMIN_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN})
ANY_ROLE: FrozenSet[Role] = frozenset()

# 页面 -> 允许访问的角色（空集合表示任意已登录角色）
PAGE_POLICY: Dict[str, FrozenSet[Role]] = {
    "dashboard": ANY_ROLE,
    "application/new": APPLICANT_ROLES,
    "application/status": APPLICANT_ROLES,
    "contract/sign": APPLICANT_ROLES,
    "hq/applications": REVIEWER_ROLES,
    "finance": frozenset({Role.FRANCHISEE, Role.HQ_FINANCE}),
    "inspection": frozenset({Role.FRANCHISEE, Role.HQ_SUPERVISOR}),
    "announcements": frozenset({Role.FRANCHISEE, Role.HQ_OPS, Role.ADMIN}),
    "admin/users": ADMIN_ROLES,
    "admin/system-configurations": ADMIN_ROLES,
    "admin/contract-templates": TEMPLATE_MANAGER_ROLES,
}


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class AuthorizationDecision:
    decision: Decision
    reason: str = ""

    @property
    def allowed(self) -> bool:
        return self.decision == Decision.ALLOW

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AuthorizationDecision(Decision.ALLOW)


def authorize(
    profile: Optional[Profile],
    required_roles: AbstractSet[Role] = ANY_ROLE,
    *,
    mutating: bool = True,
    tolerate_pending: bool = False,
) -> AuthorizationDecision:
    if profile is None:
        return AuthorizationDecision(Decision.DENY, "no profile")
    if required_roles and profile.role not in required_roles:
        return AuthorizationDecision(Decision.DENY, f"role {profile.role.value} not permitted")
    if profile.status != AccountStatus.ACTIVE:
        if mutating:
            return AuthorizationDecision(Decision.DENY, f"account {profile.status.value}")
        if not (tolerate_pending and profile.status == AccountStatus.PENDING_ACTIVATION):
            return AuthorizationDecision(Decision.DENY, f"account {profile.status.value}")
    return ALLOW


def require(
    ctx: RequestContext,
    required_roles: AbstractSet[Role] = ANY_ROLE,
    *,
    mutating: bool = True,
    tolerate_pending: bool = False,
    action: str = "",
) -> Profile:
    """对 ctx 执行 authorize()，拒绝时抛出 AuthorizationError；返回已授权的 profile。"""
    if ctx.profile is None:
        logger.warning(f"denied {action or 'operation'}: principal {ctx.user_id} has no profile")
        raise ProfileMissingError(
            message="当前用户没有档案记录",
            context={"user_id": ctx.user_id, "action": action},
        )
    result = authorize(ctx.profile, required_roles, mutating=mutating, tolerate_pending=tolerate_pending)
    if not result.allowed:
        logger.warning(f"denied {action or 'operation'} for {ctx.user_id}: {result.reason}")
        raise AuthorizationError(
            message=f"没有权限执行此操作: {result.reason}",
            context={"user_id": ctx.user_id, "action": action, "reason": result.reason},
        )
    return ctx.profile


def can_access_page(profile: Optional[Profile], page: str) -> bool:
    """页面访问为只读判定，允许待激活账号查看。未登记的页面一律拒绝。"""
    roles = PAGE_POLICY.get(page)
    if roles is None:
        return False
    return authorize(profile, roles, mutating=False, tolerate_pending=True).allowed
