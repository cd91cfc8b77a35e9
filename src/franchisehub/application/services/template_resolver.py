"""
Contract Template Resolver

为已通过审核的申请选择合同模板：取 status=active 中 created_at 最新的一个，
created_at 相同时以后插入者为准。同时提供模板的上传与归档（归档不可撤销）。
"""

from __future__ import annotations

import logging
from typing import List, Optional

from franchisehub.application import tables
from franchisehub.application.context import RequestContext
from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.application.retry import RetryPolicy, retry_read
from franchisehub.application.services.application_lifecycle import ApplicationLifecycle
from franchisehub.application.services.authorization import (
    ANY_ROLE,
    TEMPLATE_MANAGER_ROLES,
    require,
)
from franchisehub.application.services.document_manager import DocumentObjectManager, UploadFile
from franchisehub.core.errors import (
    ConcurrentModificationError,
    NoActiveTemplateError,
    NotFoundError,
    ValidationError,
)
from franchisehub.domain.application import ApplicationStatus
from franchisehub.domain.contract import ContractTemplate, TemplateStatus
from franchisehub.domain.timeutil import new_id, utcnow

logger = logging.getLogger(__name__)

# 可以查看合同内容的申请状态
_CONTRACT_VISIBLE = (ApplicationStatus.APPROVED, ApplicationStatus.CONTRACTED)


def pick_latest(templates: List[ContractTemplate]) -> Optional[ContractTemplate]:
    """templates 按插入顺序给出；created_at 最新者胜出，并列时取后插入的。"""
    best: Optional[ContractTemplate] = None
    for tpl in templates:
        if best is None or tpl.created_at >= best.created_at:
            best = tpl
    return best


class ContractTemplateResolver:
    def __init__(
        self,
        records: RecordStorePort,
        applications: ApplicationLifecycle,
        documents: DocumentObjectManager,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._records = records
        self._applications = applications
        self._documents = documents
        self._retry = retry_policy or RetryPolicy()

    def _active_templates(self) -> List[ContractTemplate]:
        rows = retry_read(
            lambda: self._records.select(
                tables.CONTRACT_TEMPLATES, filters={"status": TemplateStatus.ACTIVE.value}
            ),
            self._retry,
            op="active_templates",
        )
        return [ContractTemplate.from_record(r) for r in rows]

    def latest_active_template(self) -> ContractTemplate:
        tpl = pick_latest(self._active_templates())
        if tpl is None:
            raise NoActiveTemplateError(message="暂无可用的合同模板")
        return tpl

    def resolve_active_template(self, ctx: RequestContext, application_id: str) -> ContractTemplate:
        require(ctx, ANY_ROLE, mutating=False, action="resolve_active_template")
        app = self._applications.get_application(ctx, application_id)
        if app.status not in _CONTRACT_VISIBLE:
            raise ValidationError(
                message="申请尚未通过审核，无法查看合同",
                context={"application_id": application_id, "status": app.status.value},
            )
        tpl = pick_latest(self._active_templates())
        if tpl is None:
            raise NoActiveTemplateError(
                message="暂无可用的合同模板", context={"application_id": application_id}
            )
        return tpl

    def template_url(self, template: ContractTemplate) -> str:
        return self._documents.public_url(tables.TEMPLATES_BUCKET, template.storage_path)

    # ---- template administration ----

    def get_template(self, template_id: str) -> ContractTemplate:
        row = retry_read(
            lambda: self._records.get(tables.CONTRACT_TEMPLATES, template_id), self._retry, op="get_template"
        )
        if row is None:
            raise NotFoundError(message=f"Template not found: {template_id}", context={"template_id": template_id})
        return ContractTemplate.from_record(row)

    def list_templates(self, ctx: RequestContext, *, include_archived: bool = False) -> List[ContractTemplate]:
        require(ctx, TEMPLATE_MANAGER_ROLES, mutating=False, action="list_templates")
        filters = None if include_archived else {"status": TemplateStatus.ACTIVE.value}
        rows = retry_read(
            lambda: self._records.select(
                tables.CONTRACT_TEMPLATES, filters=filters, order_by="created_at", descending=True
            ),
            self._retry,
            op="list_templates",
        )
        return [ContractTemplate.from_record(r) for r in rows]

    def upload_template(
        self,
        ctx: RequestContext,
        name: str,
        file: UploadFile,
        *,
        description: Optional[str] = None,
    ) -> ContractTemplate:
        require(ctx, TEMPLATE_MANAGER_ROLES, action="upload_template")
        name = (name or "").strip()
        if not name:
            raise ValidationError(message="请填写模板名称并选择一个 PDF 文件", field_errors={"name": "必填"})

        ref = self._documents.upload_template_file(file)
        template = ContractTemplate(
            id=new_id(),
            name=name,
            description=(description or "").strip() or None,
            file_name=file.name,
            storage_path=ref.storage_path or "",
            uploaded_by_user_id=ctx.user_id,
            status=TemplateStatus.ACTIVE,
            created_at=utcnow(),
        )
        try:
            row = self._records.insert(tables.CONTRACT_TEMPLATES, template.to_record())
        except Exception:
            logger.error(f"template record insert failed; object {ref.storage_path} is orphaned")
            raise
        logger.info(f"template {template.id} ({name}) uploaded by {ctx.user_id}")
        return ContractTemplate.from_record(row)

    def archive_template(self, ctx: RequestContext, template_id: str) -> ContractTemplate:
        """归档后不再提供给新合同；没有反向操作。"""
        require(ctx, TEMPLATE_MANAGER_ROLES, action="archive_template")
        tpl = self.get_template(template_id)
        if tpl.status == TemplateStatus.ARCHIVED:
            return tpl
        row = self._records.update(
            tables.CONTRACT_TEMPLATES,
            template_id,
            {"status": TemplateStatus.ARCHIVED.value},
            where={"status": TemplateStatus.ACTIVE.value},
        )
        if row is None:
            fresh = self.get_template(template_id)
            if fresh.status == TemplateStatus.ARCHIVED:
                return fresh
            raise ConcurrentModificationError(
                message="模板状态已变化，请刷新后重试", context={"template_id": template_id}
            )
        logger.info(f"template {template_id} archived by {ctx.user_id}")
        return ContractTemplate.from_record(row)
