"""
Application Record Lifecycle

申请实体及其状态机。所有状态写入都是以"期望的旧状态"为条件的单记录更新：
    update franchise_applications set status=X ... where id=? and status=<expected>
命中 0 行即视为并发修改，抛出 ConcurrentModificationError，绝不静默成功。
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from franchisehub.application import tables
from franchisehub.application.context import RequestContext
from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.application.retry import RetryPolicy, retry_read
from franchisehub.application.services.authorization import (
    ANY_ROLE,
    APPLICANT_ROLES,
    REVIEWER_ROLES,
    authorize,
    require,
)
from franchisehub.core.errors import (
    AuthorizationError,
    ConcurrentModificationError,
    DuplicateOpenApplicationError,
    InvalidTransitionError,
    NotFoundError,
    UniqueViolationError,
    ValidationError,
)
from franchisehub.domain.application import (
    COMMENT_REQUIRED,
    CONTACT_FIELDS,
    COSMETIC_FIELDS,
    REVIEW_QUEUE_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    ApplicationStatus,
    DocumentRef,
    FranchiseApplication,
    TransitionActor,
    can_transition,
    is_terminal,
)
from franchisehub.domain.timeutil import format_ts, new_id, utcnow

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

OPEN_STATUSES = [s.value for s in ApplicationStatus if s not in TERMINAL_STATUSES]


class ApplicationForm(BaseModel):
    """加盟申请表单；姓名、电话、邮箱、意向城市为必填项。"""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    contact_name: str = Field(..., min_length=1, max_length=128)
    contact_phone: str = Field(..., min_length=1, max_length=32)
    contact_email: str = Field(..., min_length=3, max_length=256)
    intended_city: str = Field(..., min_length=1, max_length=128)
    investment_amount: Optional[str] = Field(None, max_length=64)
    experience_description: Optional[str] = Field(None, max_length=4000)

    @field_validator("contact_email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        if not _EMAIL_RE.match(v):
            raise ValueError("邮箱格式不正确")
        return v

    @field_validator("investment_amount", "experience_description")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


def parse_form(data: Union[ApplicationForm, Mapping[str, Any]]) -> ApplicationForm:
    if isinstance(data, ApplicationForm):
        return data
    try:
        return ApplicationForm(**dict(data))
    except PydanticValidationError as e:
        field_errors = {".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()}
        raise ValidationError(message="请填写所有必填项（姓名、电话、邮箱、意向城市）", field_errors=field_errors)


class ApplicationLifecycle:
    def __init__(self, records: RecordStorePort, retry_policy: Optional[RetryPolicy] = None):
        self._records = records
        self._retry = retry_policy or RetryPolicy()

    # ---- reads ----

    def _load(self, application_id: str) -> FranchiseApplication:
        row = retry_read(
            lambda: self._records.get(tables.APPLICATIONS, application_id), self._retry, op="load_application"
        )
        if row is None:
            raise NotFoundError(
                message=f"Application not found: {application_id}", context={"application_id": application_id}
            )
        return FranchiseApplication.from_record(row)

    def get_application(self, ctx: RequestContext, application_id: str) -> FranchiseApplication:
        """审核人可读任意申请；其他角色只能读自己的申请。"""
        require(ctx, ANY_ROLE, mutating=False, tolerate_pending=True, action="get_application")
        app = self._load(application_id)
        if app.user_id != ctx.user_id and not authorize(ctx.profile, REVIEWER_ROLES, mutating=False):
            logger.warning(f"denied read of application {application_id} for {ctx.user_id}")
            raise AuthorizationError(
                message="没有权限查看此申请",
                context={"user_id": ctx.user_id, "application_id": application_id},
            )
        return app

    def find_open_application(self, user_id: str) -> Optional[FranchiseApplication]:
        rows = retry_read(
            lambda: self._records.select(
                tables.APPLICATIONS, filters={"user_id": user_id, "status": OPEN_STATUSES}, limit=1
            ),
            self._retry,
            op="find_open_application",
        )
        return FranchiseApplication.from_record(rows[0]) if rows else None

    def current_application(self, ctx: RequestContext) -> Optional[FranchiseApplication]:
        """申请人最近一次提交的申请（申请状态页）。"""
        require(ctx, APPLICANT_ROLES, mutating=False, tolerate_pending=True, action="current_application")
        rows = retry_read(
            lambda: self._records.select(
                tables.APPLICATIONS,
                filters={"user_id": ctx.user_id},
                order_by="submitted_at",
                descending=True,
                limit=1,
            ),
            self._retry,
            op="current_application",
        )
        return FranchiseApplication.from_record(rows[0]) if rows else None

    def list_for_review(
        self, ctx: RequestContext, statuses: Optional[Iterable[ApplicationStatus]] = None
    ) -> List[FranchiseApplication]:
        require(ctx, REVIEWER_ROLES, mutating=False, action="list_for_review")
        wanted = [ApplicationStatus(s).value for s in (statuses or REVIEW_QUEUE_STATUSES)]
        rows = retry_read(
            lambda: self._records.select(
                tables.APPLICATIONS, filters={"status": wanted}, order_by="submitted_at"
            ),
            self._retry,
            op="list_for_review",
        )
        return [FranchiseApplication.from_record(r) for r in rows]

    # ---- applicant actions ----

    def submit_application(
        self,
        ctx: RequestContext,
        form: Union[ApplicationForm, Mapping[str, Any]],
        documents: Sequence[DocumentRef] = (),
    ) -> FranchiseApplication:
        require(ctx, APPLICANT_ROLES, action="submit_application")
        parsed = parse_form(form)

        existing = self.find_open_application(ctx.user_id)
        if existing is not None:
            raise DuplicateOpenApplicationError(
                message="您已有一个进行中的加盟申请",
                context={"user_id": ctx.user_id, "application_id": existing.id, "status": existing.status.value},
            )

        now = utcnow()
        app = FranchiseApplication(
            id=new_id(),
            user_id=ctx.user_id,
            contact_name=parsed.contact_name,
            contact_phone=parsed.contact_phone,
            contact_email=parsed.contact_email,
            intended_city=parsed.intended_city,
            investment_amount=parsed.investment_amount,
            experience_description=parsed.experience_description,
            documents=list(documents),
            status=ApplicationStatus.SUBMITTED,
            submitted_at=now,
            updated_at=now,
        )
        try:
            row = self._records.insert(tables.APPLICATIONS, app.to_record())
        except UniqueViolationError:
            # open_application_key 唯一：并发提交时只有一条能写入
            logger.warning(f"concurrent submit for {ctx.user_id} rejected by store")
            raise DuplicateOpenApplicationError(
                message="您已有一个进行中的加盟申请",
                context={"user_id": ctx.user_id},
            )
        logger.info(f"application {app.id} submitted by {ctx.user_id} ({len(app.documents)} documents)")
        return FranchiseApplication.from_record(row)

    def update_contact_details(self, ctx: RequestContext, application_id: str, **changes: Any) -> FranchiseApplication:
        """
        申请人修改自己的联系信息。

        - 要求补充材料: 可修改全部联系信息
        - 已通过/已签约: 只允许修改展示字段（电话、邮箱）
        - 其他状态（已提交、审核中、已驳回）: 不可修改
        """
        require(ctx, APPLICANT_ROLES, action="update_contact_details")
        unknown = set(changes) - CONTACT_FIELDS
        if unknown:
            raise ValidationError(
                message="包含不可修改的字段",
                field_errors={k: "not editable" for k in sorted(unknown)},
            )
        app = self._load(application_id)
        if app.user_id != ctx.user_id:
            raise AuthorizationError(
                message="没有权限修改此申请",
                context={"user_id": ctx.user_id, "application_id": application_id},
            )
        if app.status in (ApplicationStatus.APPROVED, ApplicationStatus.CONTRACTED):
            locked = set(changes) - COSMETIC_FIELDS
            if locked:
                raise ValidationError(
                    message="申请已通过审核，仅可修改联系电话和邮箱",
                    field_errors={k: "locked" for k in sorted(locked)},
                )
        elif app.status != ApplicationStatus.ADDITIONAL_INFO_REQUESTED:
            raise ValidationError(
                message=f"申请状态为 {app.status.value}，当前不可修改",
                context={"application_id": application_id, "status": app.status.value},
            )

        merged = {f: getattr(app, f) for f in CONTACT_FIELDS}
        merged.update(changes)
        parsed = parse_form(merged)
        values: Dict[str, Any] = {f: getattr(parsed, f) for f in changes}
        values["updated_at"] = format_ts(utcnow())

        row = self._records.update(
            tables.APPLICATIONS, application_id, values, where={"status": app.status.value}
        )
        if row is None:
            raise ConcurrentModificationError(
                message="申请状态已被其他人修改，请刷新后重试",
                context={"application_id": application_id, "expected_status": app.status.value},
            )
        return FranchiseApplication.from_record(row)

    # ---- reviewer actions ----

    def transition(
        self,
        ctx: RequestContext,
        application_id: str,
        target: Union[ApplicationStatus, str],
        *,
        review_notes: Optional[str] = None,
        comments_for_applicant: Optional[str] = None,
        expected_status: Optional[Union[ApplicationStatus, str]] = None,
    ) -> FranchiseApplication:
        """
        审核人推进申请状态。

        expected_status 是调用方读到的旧状态；给出时写入以它为条件，未命中直接抛
        ConcurrentModificationError。未给出时服务自行读取当前状态，未命中则重新读取并自动重试一次。
        """
        target = ApplicationStatus(target)
        require(ctx, REVIEWER_ROLES, action=f"transition:{target.value}")
        if TRANSITIONS.get(target, (None, TransitionActor.SYSTEM))[1] != TransitionActor.REVIEWER:
            raise InvalidTransitionError(
                message=f"审核人不能将申请直接置为 {target.value}",
                to_status=target.value,
                context={"application_id": application_id},
            )

        attempts = 1 if expected_status is not None else 2
        for attempt in range(attempts):
            if expected_status is not None:
                current = ApplicationStatus(expected_status)
            else:
                current = self._load(application_id).status

            if not can_transition(current, target, TransitionActor.REVIEWER):
                if attempt > 0:
                    # 重新读取后发现已被他人推进，仍按并发冲突上报
                    raise ConcurrentModificationError(
                        message=f"申请已被其他审核人改为 {current.value}，请刷新后重试",
                        context={"application_id": application_id, "current_status": current.value,
                                 "target": target.value},
                    )
                raise InvalidTransitionError(
                    message=f"不允许的状态变更: {current.value} -> {target.value}",
                    from_status=current.value,
                    to_status=target.value,
                    context={"application_id": application_id},
                )
            if target in COMMENT_REQUIRED and not (comments_for_applicant or "").strip():
                raise ValidationError(
                    message="要求补充材料时必须填写给申请人的意见",
                    field_errors={"hq_comments_for_applicant": "必填"},
                )
            if target == ApplicationStatus.REJECTED and not (comments_for_applicant or "").strip():
                logger.info(f"application {application_id} rejected without comments for applicant")

            now = format_ts(utcnow())
            values: Dict[str, Any] = {
                "status": target.value,
                "reviewed_by_user_id": ctx.user_id,
                "reviewed_at": now,
                "updated_at": now,
            }
            if review_notes is not None:
                values["review_notes"] = review_notes
            if comments_for_applicant is not None:
                values["hq_comments_for_applicant"] = comments_for_applicant
            if is_terminal(target):
                values["open_application_key"] = None

            row = self._records.update(tables.APPLICATIONS, application_id, values, where={"status": current.value})
            if row is not None:
                logger.info(
                    f"application {application_id}: {current.value} -> {target.value} by {ctx.user_id}"
                )
                return FranchiseApplication.from_record(row)

            if self._records.get(tables.APPLICATIONS, application_id) is None:
                raise NotFoundError(
                    message=f"Application not found: {application_id}",
                    context={"application_id": application_id},
                )
            if attempt + 1 < attempts:
                logger.info(f"application {application_id} changed concurrently; re-reading once")

        raise ConcurrentModificationError(
            message="申请状态已被其他审核人修改，请刷新后重试",
            context={"application_id": application_id, "expected_status": current.value, "target": target.value},
        )

    def start_review(self, ctx: RequestContext, application_id: str, **kwargs: Any) -> FranchiseApplication:
        return self.transition(ctx, application_id, ApplicationStatus.UNDER_REVIEW, **kwargs)

    def approve(self, ctx: RequestContext, application_id: str, **kwargs: Any) -> FranchiseApplication:
        return self.transition(ctx, application_id, ApplicationStatus.APPROVED, **kwargs)

    def reject(self, ctx: RequestContext, application_id: str, **kwargs: Any) -> FranchiseApplication:
        return self.transition(ctx, application_id, ApplicationStatus.REJECTED, **kwargs)

    def request_more_info(
        self, ctx: RequestContext, application_id: str, comments_for_applicant: str, **kwargs: Any
    ) -> FranchiseApplication:
        return self.transition(
            ctx,
            application_id,
            ApplicationStatus.ADDITIONAL_INFO_REQUESTED,
            comments_for_applicant=comments_for_applicant,
            **kwargs,
        )

    # ---- system actions ----

    def mark_contracted(self, application_id: str) -> FranchiseApplication:
        """approved -> contracted，仅由签约流程（或对账任务）在合同写入后调用。"""
        row = self._records.update(
            tables.APPLICATIONS,
            application_id,
            {
                "status": ApplicationStatus.CONTRACTED.value,
                "open_application_key": None,
                "updated_at": format_ts(utcnow()),
            },
            where={"status": ApplicationStatus.APPROVED.value},
        )
        if row is None:
            current = self._records.get(tables.APPLICATIONS, application_id)
            if current is None:
                raise NotFoundError(
                    message=f"Application not found: {application_id}",
                    context={"application_id": application_id},
                )
            raise ConcurrentModificationError(
                message=f"申请状态为 {current.get('status')}，无法标记为已签约",
                context={"application_id": application_id, "expected_status": ApplicationStatus.APPROVED.value},
            )
        logger.info(f"application {application_id}: approved -> contracted")
        return FranchiseApplication.from_record(row)
