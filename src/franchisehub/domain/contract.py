"""
合同模板与已签署合同模型
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from franchisehub.domain.timeutil import format_ts, parse_ts, utcnow


class TemplateStatus(str, Enum):
    ACTIVE = "active"      # 可用于新合同
    ARCHIVED = "archived"  # 已归档，不可恢复


class SignedContractStatus(str, Enum):
    SIGNED = "signed"


class FinalizationStep(str, Enum):
    """签约流程中的各步骤，按顺序记录到事件日志。"""

    STARTED = "started"
    SIGNATURE_UPLOADED = "signature_uploaded"
    CONTRACT_RECORDED = "contract_recorded"
    APPLICATION_CONTRACTED = "application_contracted"
    FAILED = "failed"
    RECONCILED = "reconciled"


@dataclass
class ContractTemplate:
    id: str
    name: str
    file_name: str
    storage_path: str
    uploaded_by_user_id: str
    description: Optional[str] = None
    status: TemplateStatus = TemplateStatus.ACTIVE
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Template name cannot be empty")
        self.status = TemplateStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == TemplateStatus.ACTIVE

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "file_name": self.file_name,
            "storage_path": self.storage_path,
            "status": self.status.value,
            "uploaded_by_user_id": self.uploaded_by_user_id,
            "created_at": format_ts(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "ContractTemplate":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            description=data.get("description"),
            file_name=data.get("file_name") or "",
            storage_path=data.get("storage_path") or "",
            status=TemplateStatus(data.get("status") or TemplateStatus.ACTIVE.value),
            uploaded_by_user_id=data.get("uploaded_by_user_id") or "",
            created_at=parse_ts(data.get("created_at")) or utcnow(),
        )


def generate_contract_number(application_id: str, signed_at: datetime) -> str:
    """
    合同编号: FC-{签署日期 YYYYMMDD}-{sha256(application_id) 完整十六进制}

    对同一申请是确定的；保留完整摘要，不同申请不会得到相同编号。
    signed_contracts.contract_number 另有唯一约束。
    """
    digest = hashlib.sha256(application_id.encode("utf-8")).hexdigest()
    return f"FC-{signed_at.strftime('%Y%m%d')}-{digest}".upper()


@dataclass
class SignedContract:
    id: str
    application_id: str
    user_id: str
    signature_url: str
    contract_number: str
    signed_at: datetime = field(default_factory=utcnow)
    status: SignedContractStatus = SignedContractStatus.SIGNED

    def __post_init__(self):
        if not self.application_id:
            raise ValueError("Signed contract must reference an application")
        self.status = SignedContractStatus(self.status)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "user_id": self.user_id,
            "signature_url": self.signature_url,
            "contract_number": self.contract_number,
            "signed_at": format_ts(self.signed_at),
            "status": self.status.value,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "SignedContract":
        return cls(
            id=str(data["id"]),
            application_id=str(data["application_id"]),
            user_id=str(data.get("user_id") or ""),
            signature_url=data.get("signature_url") or "",
            contract_number=data.get("contract_number") or "",
            signed_at=parse_ts(data.get("signed_at")) or utcnow(),
            status=SignedContractStatus(data.get("status") or SignedContractStatus.SIGNED.value),
        )
