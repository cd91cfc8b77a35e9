"""
请求级上下文。

每个请求创建一个 RequestContext，显式传入所有核心调用；
不存在进程级的"当前用户"单例，角色判定因此可确定、可测试。
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from franchisehub.domain.identity import AccountStatus, Principal, Profile, Role


@dataclass(frozen=True)
class RequestContext:
    principal: Principal
    profile: Optional[Profile]
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])

    @property
    def user_id(self) -> str:
        return self.principal.id

    @property
    def role(self) -> Optional[Role]:
        return self.profile.role if self.profile else None

    @property
    def status(self) -> Optional[AccountStatus]:
        return self.profile.status if self.profile else None
