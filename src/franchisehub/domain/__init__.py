"""
领域模型：身份、加盟申请、合同。
"""

from .identity import AccountStatus, Principal, Profile, Role
from .application import (
    ApplicationStatus,
    DocumentRef,
    FranchiseApplication,
    TransitionActor,
    allowed_targets,
    can_transition,
    is_terminal,
)
from .contract import (
    ContractTemplate,
    FinalizationStep,
    SignedContract,
    SignedContractStatus,
    TemplateStatus,
    generate_contract_number,
)

__all__ = [
    "AccountStatus",
    "Principal",
    "Profile",
    "Role",
    "ApplicationStatus",
    "DocumentRef",
    "FranchiseApplication",
    "TransitionActor",
    "allowed_targets",
    "can_transition",
    "is_terminal",
    "ContractTemplate",
    "FinalizationStep",
    "SignedContract",
    "SignedContractStatus",
    "TemplateStatus",
    "generate_contract_number",
]
