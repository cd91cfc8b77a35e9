"""
Signature & Contract Finalization

签约是一个显式的补偿式流程（saga），每一步完成后写入事件日志:

    1. 上传签名图片          -> signature_uploaded
    2. 生成合同编号
    3. 写入 signed_contracts -> contract_recorded
    4. 申请 approved -> contracted（条件更新） -> application_contracted

记录存储只提供单记录条件写，第 3、4 步无法原子化。第 4 步在第 3 步成功后失败时，
抛出 PartialFinalizationError（携带 application_id 与 signed_contract_id），
由 reconcile() 补做状态变更或标记为需人工处理。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from franchisehub.application import tables
from franchisehub.application.collaboration.message_schema import make_event, new_run_id
from franchisehub.application.context import RequestContext
from franchisehub.application.ports.event_log_port import EventLogPort
from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.application.retry import RetryPolicy, retry_read
from franchisehub.application.services.application_lifecycle import ApplicationLifecycle
from franchisehub.application.services.authorization import (
    ADMIN_ROLES,
    ANY_ROLE,
    APPLICANT_ROLES,
    REVIEWER_ROLES,
    authorize,
    require,
)
from franchisehub.application.services.document_manager import DocumentObjectManager
from franchisehub.core.errors import (
    DuplicateContractError,
    FranchiseError,
    InvalidTransitionError,
    NotFoundError,
    PartialFinalizationError,
    Result,
    UniqueViolationError,
)
from franchisehub.domain.application import ApplicationStatus, FranchiseApplication
from franchisehub.domain.contract import FinalizationStep, SignedContract, generate_contract_number
from franchisehub.domain.timeutil import new_id, utcnow

logger = logging.getLogger(__name__)

WORKFLOW = "contract_finalization"


@dataclass
class ReconciliationItem:
    application_id: str
    signed_contract_id: Optional[str]
    outcome: Result[FranchiseApplication, FranchiseError]

    @property
    def repaired(self) -> bool:
        return self.outcome.is_ok()


@dataclass
class ReconciliationReport:
    run_id: str
    scanned: int = 0
    items: List[ReconciliationItem] = field(default_factory=list)

    @property
    def repaired(self) -> List[str]:
        return [i.application_id for i in self.items if i.repaired]

    @property
    def flagged(self) -> List[ReconciliationItem]:
        return [i for i in self.items if not i.repaired]


class ContractFinalizer:
    def __init__(
        self,
        records: RecordStorePort,
        applications: ApplicationLifecycle,
        documents: DocumentObjectManager,
        event_log: EventLogPort,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._records = records
        self._applications = applications
        self._documents = documents
        self._events = event_log
        self._retry = retry_policy or RetryPolicy()

    def _journal(
        self,
        run_id: str,
        step: FinalizationStep,
        application_id: str,
        *,
        actor_id: str = "",
        role: str = "system",
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            self._events.append(
                make_event(
                    run_id=run_id,
                    workflow=WORKFLOW,
                    stage=step.value,
                    type="step_failed" if step == FinalizationStep.FAILED else "step_completed",
                    subject_id=application_id,
                    actor_id=actor_id,
                    role=role,
                    payload=payload,
                )
            )
        except Exception as e:
            logger.warning(f"journal append failed for run {run_id} ({step.value}): {e}")

    def find_contract(self, application_id: str) -> Optional[SignedContract]:
        rows = retry_read(
            lambda: self._records.select(
                tables.SIGNED_CONTRACTS, filters={"application_id": application_id}, limit=1
            ),
            self._retry,
            op="find_contract",
        )
        return SignedContract.from_record(rows[0]) if rows else None

    def finalize_contract(
        self, ctx: RequestContext, application_id: str, signature_image: bytes | str
    ) -> SignedContract:
        require(ctx, APPLICANT_ROLES, action="finalize_contract")
        app = self._applications.get_application(ctx, application_id)

        existing = self.find_contract(app.id)
        if existing is not None:
            raise DuplicateContractError(
                message="该申请已签署合同",
                context={
                    "application_id": app.id,
                    "signed_contract_id": existing.id,
                    "application_status": app.status.value,
                },
            )
        if app.status != ApplicationStatus.APPROVED:
            raise InvalidTransitionError(
                message=f"申请状态为 {app.status.value}，无法签约",
                from_status=app.status.value,
                to_status=ApplicationStatus.CONTRACTED.value,
                context={"application_id": app.id},
            )

        run_id = new_run_id()
        self._journal(run_id, FinalizationStep.STARTED, app.id, actor_id=ctx.user_id, role="applicant")

        signature = self._documents.upload_signature(ctx.user_id, signature_image)
        self._journal(
            run_id,
            FinalizationStep.SIGNATURE_UPLOADED,
            app.id,
            actor_id=ctx.user_id,
            role="applicant",
            payload={"signature_url": signature.url},
        )

        signed_at = utcnow()
        contract = SignedContract(
            id=new_id(),
            application_id=app.id,
            user_id=ctx.user_id,
            signature_url=signature.url,
            contract_number=generate_contract_number(app.id, signed_at),
            signed_at=signed_at,
        )
        try:
            row = self._records.insert(tables.SIGNED_CONTRACTS, contract.to_record())
        except UniqueViolationError:
            self._journal(run_id, FinalizationStep.FAILED, app.id, payload={"reason": "duplicate_contract"})
            raise DuplicateContractError(message="该申请已签署合同", context={"application_id": app.id})
        contract = SignedContract.from_record(row)
        self._journal(
            run_id,
            FinalizationStep.CONTRACT_RECORDED,
            app.id,
            actor_id=ctx.user_id,
            role="applicant",
            payload={"signed_contract_id": contract.id, "contract_number": contract.contract_number},
        )

        try:
            self._applications.mark_contracted(app.id)
        except Exception as e:
            self._journal(
                run_id,
                FinalizationStep.FAILED,
                app.id,
                payload={"signed_contract_id": contract.id, "reason": str(e)},
            )
            logger.error(
                f"application {app.id} signed (contract {contract.id}) but not contracted: {e}"
            )
            raise PartialFinalizationError(
                message="合同已签署，但申请状态未能更新为已签约，需对账处理",
                application_id=app.id,
                signed_contract_id=contract.id,
                context={"run_id": run_id, "cause": str(e)},
            ) from e

        self._journal(
            run_id,
            FinalizationStep.APPLICATION_CONTRACTED,
            app.id,
            payload={"signed_contract_id": contract.id},
        )
        logger.info(f"contract {contract.contract_number} signed for application {app.id}")
        return contract

    def get_signed_contract(self, ctx: RequestContext, application_id: str) -> SignedContract:
        app = self._applications.get_application(ctx, application_id)
        contract = self.find_contract(app.id)
        if contract is None:
            raise NotFoundError(message="未找到已签署的合同", context={"application_id": application_id})
        return contract

    def list_signed_contracts(self, ctx: RequestContext) -> List[SignedContract]:
        """审核人查看全部合同，其他用户只看自己的。"""
        require(ctx, ANY_ROLE, mutating=False, action="list_signed_contracts")
        filters = None if authorize(ctx.profile, REVIEWER_ROLES, mutating=False) else {"user_id": ctx.user_id}
        rows = retry_read(
            lambda: self._records.select(
                tables.SIGNED_CONTRACTS, filters=filters, order_by="signed_at", descending=True
            ),
            self._retry,
            op="list_signed_contracts",
        )
        return [SignedContract.from_record(r) for r in rows]

    def reconcile(self, ctx: Optional[RequestContext] = None) -> ReconciliationReport:
        """
        找出"已签合同但申请仍为 approved"的记录并补做 approved -> contracted。
        无法修复的记录以 Result.err 形式留在报告中，供人工处理。
        """
        if ctx is not None:
            require(ctx, ADMIN_ROLES, action="reconcile")
        report = ReconciliationReport(run_id=new_run_id())

        approved = retry_read(
            lambda: self._records.select(
                tables.APPLICATIONS, filters={"status": ApplicationStatus.APPROVED.value}
            ),
            self._retry,
            op="reconcile_scan",
        )
        report.scanned = len(approved)
        for row in approved:
            app_id = str(row["id"])
            contract = self.find_contract(app_id)
            if contract is None:
                continue
            try:
                fixed = self._applications.mark_contracted(app_id)
            except FranchiseError as e:
                logger.error(f"reconcile could not complete application {app_id}: {e}")
                self._journal(
                    report.run_id,
                    FinalizationStep.FAILED,
                    app_id,
                    payload={"signed_contract_id": contract.id, "reason": str(e)},
                )
                report.items.append(ReconciliationItem(app_id, contract.id, Result.err(e)))
                continue
            self._journal(
                report.run_id,
                FinalizationStep.RECONCILED,
                app_id,
                payload={"signed_contract_id": contract.id},
            )
            report.items.append(ReconciliationItem(app_id, contract.id, Result.ok(fixed)))

        logger.info(
            f"reconcile {report.run_id}: scanned={report.scanned} repaired={len(report.repaired)} "
            f"flagged={len(report.flagged)}"
        )
        return report
