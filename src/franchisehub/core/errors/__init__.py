"""
统一错误模块。
"""

from .errors import (
    ErrorSeverity,
    ErrorKind,
    FranchiseError,
    ValidationError,
    InvalidAttachmentError,
    AuthorizationError,
    ProfileMissingError,
    NotFoundError,
    InvalidTransitionError,
    ConcurrentModificationError,
    DependencyFailureError,
    PartialUploadError,
    UniqueViolationError,
    DuplicateOpenApplicationError,
    DuplicateContractError,
    NoActiveTemplateError,
    PartialFinalizationError,
    Result,
)

__all__ = [
    "ErrorSeverity",
    "ErrorKind",
    "FranchiseError",
    "ValidationError",
    "InvalidAttachmentError",
    "AuthorizationError",
    "ProfileMissingError",
    "NotFoundError",
    "InvalidTransitionError",
    "ConcurrentModificationError",
    "DependencyFailureError",
    "PartialUploadError",
    "UniqueViolationError",
    "DuplicateOpenApplicationError",
    "DuplicateContractError",
    "NoActiveTemplateError",
    "PartialFinalizationError",
    "Result",
]
