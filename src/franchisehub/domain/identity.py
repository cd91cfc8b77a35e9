"""
身份与用户档案模型
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from franchisehub.domain.timeutil import format_ts, parse_ts, utcnow


class Role(str, Enum):
    APPLICANT = "applicant"            # 意向加盟商
    FRANCHISEE = "franchisee"          # 已签约/运营加盟商
    HQ_RECRUITER = "hq_recruiter"      # 总部招商专员
    HQ_OPS = "hq_ops"                  # 总部运营专员
    HQ_SUPERVISOR = "hq_supervisor"    # 总部区域督导
    HQ_FINANCE = "hq_finance"          # 总部财务专员
    ADMIN = "admin"                    # 系统管理员


class AccountStatus(str, Enum):
    PENDING_ACTIVATION = "pending_activation"
    ACTIVE = "active"
    DISABLED = "disabled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Principal:
    """已认证的调用方，由身份提供方创建，核心只读。"""

    id: str
    email: str = ""
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Profile:
    """用户档案；role 与 status 是相互独立的两个维度。"""

    id: str
    full_name: str
    role: Role = Role.APPLICANT
    status: AccountStatus = AccountStatus.PENDING_ACTIVATION

    email: Optional[str] = None
    phone: Optional[str] = None
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    region: Optional[str] = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Profile id cannot be empty")
        self.role = Role(self.role)
        self.status = AccountStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "role": self.role.value,
            "status": self.status.value,
            "email": self.email,
            "phone": self.phone,
            "organization_id": self.organization_id,
            "organization_name": self.organization_name,
            "region": self.region,
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Profile":
        return cls(
            id=str(data["id"]),
            full_name=data.get("full_name") or "",
            role=Role(data.get("role") or Role.APPLICANT.value),
            status=AccountStatus(data.get("status") or AccountStatus.PENDING_ACTIVATION.value),
            email=data.get("email"),
            phone=data.get("phone"),
            organization_id=data.get("organization_id"),
            organization_name=data.get("organization_name"),
            region=data.get("region"),
            created_at=parse_ts(data.get("created_at")) or utcnow(),
            updated_at=parse_ts(data.get("updated_at")) or utcnow(),
        )
