"""
加盟申请数据模型与状态机

状态流转（唯一合法的边）:
    submitted -> under_review                                   (审核人)
    submitted/under_review/additional_info_requested -> approved (审核人)
    submitted/under_review/additional_info_requested -> rejected (审核人)
    submitted/under_review -> additional_info_requested          (审核人, 需填写给申请人的意见)
    approved -> contracted                                       (系统, 合同签署成功后)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from franchisehub.domain.timeutil import format_ts, parse_ts


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"                                  # 已提交
    UNDER_REVIEW = "under_review"                            # 审核中
    APPROVED = "approved"                                    # 已通过
    REJECTED = "rejected"                                    # 已驳回
    ADDITIONAL_INFO_REQUESTED = "additional_info_requested"  # 需补充材料
    CONTRACTED = "contracted"                                # 已签约


class TransitionActor(str, Enum):
    REVIEWER = "reviewer"
    SYSTEM = "system"


TERMINAL_STATUSES: FrozenSet[ApplicationStatus] = frozenset(
    {ApplicationStatus.REJECTED, ApplicationStatus.CONTRACTED}
)

# 审核队列默认展示的状态
REVIEW_QUEUE_STATUSES: FrozenSet[ApplicationStatus] = frozenset(
    {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.ADDITIONAL_INFO_REQUESTED,
    }
)

_DECIDABLE = frozenset(
    {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.ADDITIONAL_INFO_REQUESTED,
    }
)

# target -> (允许的来源状态, 执行者)
TRANSITIONS: Mapping[ApplicationStatus, tuple[FrozenSet[ApplicationStatus], TransitionActor]] = {
    ApplicationStatus.UNDER_REVIEW: (frozenset({ApplicationStatus.SUBMITTED}), TransitionActor.REVIEWER),
    ApplicationStatus.APPROVED: (_DECIDABLE, TransitionActor.REVIEWER),
    ApplicationStatus.REJECTED: (_DECIDABLE, TransitionActor.REVIEWER),
    ApplicationStatus.ADDITIONAL_INFO_REQUESTED: (
        frozenset({ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW}),
        TransitionActor.REVIEWER,
    ),
    ApplicationStatus.CONTRACTED: (frozenset({ApplicationStatus.APPROVED}), TransitionActor.SYSTEM),
}

# 进入这些状态时必须填写给申请人的意见
COMMENT_REQUIRED: FrozenSet[ApplicationStatus] = frozenset({ApplicationStatus.ADDITIONAL_INFO_REQUESTED})

# 签约后仍允许修改的展示字段
COSMETIC_FIELDS: FrozenSet[str] = frozenset({"contact_phone", "contact_email"})
CONTACT_FIELDS: FrozenSet[str] = frozenset(
    {
        "contact_name",
        "contact_phone",
        "contact_email",
        "intended_city",
        "investment_amount",
        "experience_description",
    }
)


def is_terminal(status: ApplicationStatus | str) -> bool:
    return ApplicationStatus(status) in TERMINAL_STATUSES


def can_transition(
    current: ApplicationStatus | str,
    target: ApplicationStatus | str,
    actor: TransitionActor = TransitionActor.REVIEWER,
) -> bool:
    rule = TRANSITIONS.get(ApplicationStatus(target))
    if rule is None:
        return False
    sources, required_actor = rule
    return ApplicationStatus(current) in sources and actor == required_actor


def allowed_targets(
    current: ApplicationStatus | str, actor: TransitionActor = TransitionActor.REVIEWER
) -> List[ApplicationStatus]:
    return [t for t in ApplicationStatus if can_transition(current, t, actor)]


@dataclass
class DocumentRef:
    """已上传到对象存储的资质文件"""

    name: str
    url: str
    type: str
    size: int
    storage_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "url": self.url, "type": self.type, "size": self.size}
        if self.storage_path:
            d["storage_path"] = self.storage_path
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentRef":
        return cls(
            name=str(data.get("name") or ""),
            url=str(data.get("url") or ""),
            type=str(data.get("type") or ""),
            size=int(data.get("size") or 0),
            storage_path=data.get("storage_path"),
        )


@dataclass
class FranchiseApplication:
    """加盟申请；一个用户同一时间最多持有一个未终结的申请。"""

    id: str
    user_id: str

    # 联系信息
    contact_name: str
    contact_phone: str
    contact_email: str
    intended_city: str
    investment_amount: Optional[str] = None
    experience_description: Optional[str] = None

    documents: List[DocumentRef] = field(default_factory=list)
    status: ApplicationStatus = ApplicationStatus.SUBMITTED

    # 审核信息，仅在离开 submitted 时写入
    reviewed_by_user_id: Optional[str] = None
    review_notes: Optional[str] = None              # 仅内部可见
    hq_comments_for_applicant: Optional[str] = None  # 申请人可见

    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Application id cannot be empty")
        if not self.user_id:
            raise ValueError("Application user_id cannot be empty")
        self.status = ApplicationStatus(self.status)

    @property
    def is_open(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "contact_name": self.contact_name,
            "contact_phone": self.contact_phone,
            "contact_email": self.contact_email,
            "intended_city": self.intended_city,
            "investment_amount": self.investment_amount,
            "experience_description": self.experience_description,
            "documents": [d.to_dict() for d in self.documents],
            "status": self.status.value,
            "reviewed_by_user_id": self.reviewed_by_user_id,
            "review_notes": self.review_notes,
            "hq_comments_for_applicant": self.hq_comments_for_applicant,
            "submitted_at": format_ts(self.submitted_at),
            "reviewed_at": format_ts(self.reviewed_at),
            "updated_at": format_ts(self.updated_at),
            # 进行中的申请写入 user_id，终态清空；存储层对该列唯一
            "open_application_key": self.user_id if self.is_open else None,
        }

    def to_applicant_view(self) -> Dict[str, Any]:
        """申请人视角：去掉审核人内部备注。"""
        data = self.to_record()
        data.pop("review_notes", None)
        data.pop("open_application_key", None)
        return data

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "FranchiseApplication":
        return cls(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            contact_name=data.get("contact_name") or "",
            contact_phone=data.get("contact_phone") or "",
            contact_email=data.get("contact_email") or "",
            intended_city=data.get("intended_city") or "",
            investment_amount=data.get("investment_amount"),
            experience_description=data.get("experience_description"),
            documents=[DocumentRef.from_dict(d) for d in (data.get("documents") or [])],
            status=ApplicationStatus(data.get("status") or ApplicationStatus.SUBMITTED.value),
            reviewed_by_user_id=data.get("reviewed_by_user_id"),
            review_notes=data.get("review_notes"),
            hq_comments_for_applicant=data.get("hq_comments_for_applicant"),
            submitted_at=parse_ts(data.get("submitted_at")),
            reviewed_at=parse_ts(data.get("reviewed_at")),
            updated_at=parse_ts(data.get("updated_at")),
        )
