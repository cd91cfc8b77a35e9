from .authorization import (
    ADMIN_ROLES,
    ANY_ROLE,
    APPLICANT_ROLES,
    PAGE_POLICY,
    REVIEWER_ROLES,
    TEMPLATE_MANAGER_ROLES,
    AuthorizationDecision,
    authorize,
    can_access_page,
    require,
)
from .principal_directory import PrincipalDirectory
from .document_manager import DocumentObjectManager, DocumentPolicy, UploadFile
from .application_lifecycle import ApplicationForm, ApplicationLifecycle
from .template_resolver import ContractTemplateResolver
from .contract_finalization import ContractFinalizer, ReconciliationItem, ReconciliationReport
from .user_admin import UserAdministration

__all__ = [
    "ADMIN_ROLES",
    "ANY_ROLE",
    "APPLICANT_ROLES",
    "PAGE_POLICY",
    "REVIEWER_ROLES",
    "TEMPLATE_MANAGER_ROLES",
    "AuthorizationDecision",
    "authorize",
    "can_access_page",
    "require",
    "PrincipalDirectory",
    "DocumentObjectManager",
    "DocumentPolicy",
    "UploadFile",
    "ApplicationForm",
    "ApplicationLifecycle",
    "ContractTemplateResolver",
    "ContractFinalizer",
    "ReconciliationItem",
    "ReconciliationReport",
    "UserAdministration",
]
