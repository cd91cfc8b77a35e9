"""
服务装配

按 Settings 构造存储适配器与各个服务。返回的 FranchiseServices 只持有无状态的服务对象，
每个请求通过 open_context() 得到自己的 RequestContext，不存在进程级的"当前用户"。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from franchisehub.application.context import RequestContext
from franchisehub.application.ports.event_log_port import EventLogPort
from franchisehub.application.ports.identity_port import IdentityProviderPort
from franchisehub.application.ports.object_store_port import ObjectStorePort
from franchisehub.application.ports.record_store_port import RecordStorePort
from franchisehub.application.retry import RetryPolicy
from franchisehub.application.services.application_lifecycle import ApplicationLifecycle
from franchisehub.application.services.contract_finalization import ContractFinalizer
from franchisehub.application.services.document_manager import MB, DocumentObjectManager, DocumentPolicy
from franchisehub.application.services.principal_directory import PrincipalDirectory
from franchisehub.application.services.template_resolver import ContractTemplateResolver
from franchisehub.application.services.user_admin import UserAdministration
from franchisehub.config.settings import Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)


@dataclass
class FranchiseServices:
    records: RecordStorePort
    objects: ObjectStorePort
    events: EventLogPort
    directory: PrincipalDirectory
    documents: DocumentObjectManager
    applications: ApplicationLifecycle
    templates: ContractTemplateResolver
    contracts: ContractFinalizer
    users: UserAdministration

    def open_context(self, identity: IdentityProviderPort) -> RequestContext:
        return self.directory.open_context(identity)

    def close(self) -> None:
        self.events.close()
        close = getattr(self.records, "close", None)
        if callable(close):
            close()


def retry_policy_from(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.retry.max_retries,
        base_backoff_s=settings.retry.base_backoff_s,
        max_backoff_s=settings.retry.max_backoff_s,
    )


def document_policy_from(settings: Settings) -> DocumentPolicy:
    return DocumentPolicy(
        max_files=settings.documents.max_files,
        max_file_size_bytes=int(settings.documents.max_file_size_mb * MB),
        allowed_mime_types=frozenset(settings.documents.allowed_mime_types),
    )


def build_record_store(settings: Settings) -> RecordStorePort:
    from franchisehub.infrastructure.stores.sqlalchemy_record_store import SqlAlchemyRecordStore

    return SqlAlchemyRecordStore(
        settings.database.url,
        auto_create_schema=settings.database.auto_create_schema,
        echo=settings.database.echo,
    )


def build_object_store(settings: Settings) -> ObjectStorePort:
    from franchisehub.infrastructure.storage.object_store import (
        InMemoryObjectStore,
        LocalObjectStore,
        S3ObjectStore,
    )

    cfg = settings.storage
    if cfg.backend == "memory":
        return InMemoryObjectStore()
    if cfg.backend == "s3":
        return S3ObjectStore(
            region_name=cfg.region_name,
            endpoint_url=cfg.endpoint_url,
            public_base_url=cfg.public_base_url if cfg.public_base_url.startswith("http") else None,
            bucket_map=cfg.bucket_map,
        )
    return LocalObjectStore(cfg.root_dir, public_base_url=cfg.public_base_url)


def build_event_log(settings: Settings) -> EventLogPort:
    from franchisehub.infrastructure.event_log.composite_event_log import CompositeEventLog
    from franchisehub.infrastructure.event_log.logging_event_log import LoggingEventLog
    from franchisehub.infrastructure.event_log.memory_event_log import InMemoryEventLog
    from franchisehub.infrastructure.event_log.sqlalchemy_event_log import SqlAlchemyEventLog

    backends: List[EventLogPort] = []
    for name in settings.event_log.backends:
        name = name.strip().lower()
        if name == "logging":
            backends.append(LoggingEventLog())
        elif name == "sqlalchemy":
            backends.append(
                SqlAlchemyEventLog(
                    settings.database.url,
                    auto_create_schema=settings.database.auto_create_schema,
                    echo=settings.database.echo,
                )
            )
        elif name == "memory":
            backends.append(InMemoryEventLog())
        else:
            logger.warning(f"unknown event log backend ignored: {name}")
    if len(backends) == 1:
        return backends[0]
    return CompositeEventLog(backends)


def build_services(
    settings: Optional[Settings] = None,
    *,
    records: Optional[RecordStorePort] = None,
    objects: Optional[ObjectStorePort] = None,
    events: Optional[EventLogPort] = None,
) -> FranchiseServices:
    """显式传入的适配器优先，未传入的按配置构造。"""
    settings = settings or load_settings()
    configure_logging(settings.logging)
    retry = retry_policy_from(settings)

    records = records if records is not None else build_record_store(settings)
    objects = objects if objects is not None else build_object_store(settings)
    events = events if events is not None else build_event_log(settings)

    documents = DocumentObjectManager(objects, document_policy_from(settings))
    applications = ApplicationLifecycle(records, retry)
    return FranchiseServices(
        records=records,
        objects=objects,
        events=events,
        directory=PrincipalDirectory(records, retry),
        documents=documents,
        applications=applications,
        templates=ContractTemplateResolver(records, applications, documents, retry),
        contracts=ContractFinalizer(records, applications, documents, events, retry),
        users=UserAdministration(records, retry),
    )
