"""
统一错误分类与 Result 封装。

每个错误都带有 ErrorKind，调用方（展示层）据此决定是提示字段错误、
要求重新读取后重试，还是进入人工对账流程。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union, cast


class ErrorSeverity(Enum):
    WARNING = "warning"      # 调用方可在本地恢复
    ERROR = "error"          # 操作失败，记录未改变
    CRITICAL = "critical"    # 数据处于不一致状态，需要对账


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    INVALID_ATTACHMENT = "invalid_attachment"
    AUTHORIZATION = "authorization"
    PROFILE_MISSING = "profile_missing"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    DEPENDENCY_FAILURE = "dependency_failure"
    UNIQUE_VIOLATION = "unique_violation"
    DUPLICATE_OPEN_APPLICATION = "duplicate_open_application"
    DUPLICATE_CONTRACT = "duplicate_contract"
    NO_ACTIVE_TEMPLATE = "no_active_template"
    PARTIAL_FINALIZATION = "partial_finalization"


@dataclass(eq=False)
class FranchiseError(Exception):
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    code: str = "UNKNOWN"
    context: Dict[str, Any] | None = None
    kind: ErrorKind = ErrorKind.VALIDATION

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass(eq=False)
class ValidationError(FranchiseError):
    """输入格式/大小/类型错误，field_errors 为字段级提示。"""

    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "VALIDATION_ERROR"
    kind: ErrorKind = ErrorKind.VALIDATION
    field_errors: Dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class InvalidAttachmentError(ValidationError):
    code: str = "INVALID_ATTACHMENT"
    kind: ErrorKind = ErrorKind.INVALID_ATTACHMENT


@dataclass(eq=False)
class AuthorizationError(FranchiseError):
    code: str = "AUTHORIZATION_DENIED"
    kind: ErrorKind = ErrorKind.AUTHORIZATION


@dataclass(eq=False)
class ProfileMissingError(AuthorizationError):
    code: str = "PROFILE_MISSING"
    kind: ErrorKind = ErrorKind.PROFILE_MISSING


@dataclass(eq=False)
class NotFoundError(FranchiseError):
    code: str = "NOT_FOUND"
    kind: ErrorKind = ErrorKind.NOT_FOUND


@dataclass(eq=False)
class InvalidTransitionError(FranchiseError):
    code: str = "INVALID_TRANSITION"
    kind: ErrorKind = ErrorKind.INVALID_TRANSITION
    from_status: Optional[str] = None
    to_status: Optional[str] = None


@dataclass(eq=False)
class ConcurrentModificationError(FranchiseError):
    """条件更新命中 0 行：调用方应重新读取后再决定是否重试。"""

    code: str = "CONCURRENT_MODIFICATION"
    kind: ErrorKind = ErrorKind.CONCURRENT_MODIFICATION


@dataclass(eq=False)
class DependencyFailureError(FranchiseError):
    """记录存储或对象存储不可用。"""

    code: str = "DEPENDENCY_FAILURE"
    kind: ErrorKind = ErrorKind.DEPENDENCY_FAILURE


@dataclass(eq=False)
class PartialUploadError(DependencyFailureError):
    """批量上传中途失败；stored 为已成功写入的文件，调用方可据此续传。"""

    code: str = "PARTIAL_UPLOAD"
    stored: List[Any] = field(default_factory=list)


@dataclass(eq=False)
class UniqueViolationError(FranchiseError):
    """记录存储唯一约束冲突，由服务层映射为具体的领域错误。"""

    code: str = "UNIQUE_VIOLATION"
    kind: ErrorKind = ErrorKind.UNIQUE_VIOLATION


@dataclass(eq=False)
class DuplicateOpenApplicationError(FranchiseError):
    code: str = "DUPLICATE_OPEN_APPLICATION"
    kind: ErrorKind = ErrorKind.DUPLICATE_OPEN_APPLICATION


@dataclass(eq=False)
class DuplicateContractError(FranchiseError):
    code: str = "DUPLICATE_CONTRACT"
    kind: ErrorKind = ErrorKind.DUPLICATE_CONTRACT


@dataclass(eq=False)
class NoActiveTemplateError(FranchiseError):
    code: str = "NO_ACTIVE_TEMPLATE"
    kind: ErrorKind = ErrorKind.NO_ACTIVE_TEMPLATE


@dataclass(eq=False)
class PartialFinalizationError(FranchiseError):
    """合同已写入但申请未转为 contracted，必须对账，不得吞掉。"""

    severity: ErrorSeverity = ErrorSeverity.CRITICAL
    code: str = "PARTIAL_FINALIZATION"
    kind: ErrorKind = ErrorKind.PARTIAL_FINALIZATION
    application_id: Optional[str] = None
    signed_contract_id: Optional[str] = None


T = TypeVar("T")
E = TypeVar("E", bound=FranchiseError)


@dataclass
class Result(Generic[T, E]):
    """函数式结果封装，用于批量任务逐项汇报成败。"""

    _value: Union[T, E]
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(_value=value, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(_value=error, _is_ok=False)

    def is_ok(self) -> bool:
        return self._is_ok

    def unwrap(self) -> T:
        if not self._is_ok:
            raise cast(E, self._value)
        return cast(T, self._value)

    def unwrap_or(self, default: T) -> T:
        return cast(T, self._value) if self._is_ok else default

    def error(self) -> Optional[E]:
        return None if self._is_ok else cast(E, self._value)

    def map(self, fn) -> "Result[T, E]":
        if self._is_ok:
            return Result.ok(fn(self._value))  # type: ignore[arg-type]
        return self
