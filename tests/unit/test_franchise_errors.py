"""
错误分类单元测试
"""

import pytest

from franchisehub.core.errors import (
    AuthorizationError,
    ConcurrentModificationError,
    DependencyFailureError,
    ErrorKind,
    ErrorSeverity,
    FranchiseError,
    InvalidAttachmentError,
    PartialFinalizationError,
    PartialUploadError,
    ProfileMissingError,
    Result,
    ValidationError,
)


class TestErrorSeverity:
    def test_severity_values(self):
        assert ErrorSeverity.WARNING.value == "warning"
        assert ErrorSeverity.ERROR.value == "error"
        assert ErrorSeverity.CRITICAL.value == "critical"


class TestFranchiseError:
    def test_error_str(self):
        err = FranchiseError(message="Test error", code="TEST")
        assert "[TEST] Test error" in str(err)

    def test_error_with_context(self):
        err = FranchiseError(message="Failed", context={"key": "value"})
        assert err.context == {"key": "value"}


class TestSpecificErrors:
    def test_subclass_codes_survive_dataclass_defaults(self):
        assert AuthorizationError(message="x").code == "AUTHORIZATION_DENIED"
        assert ConcurrentModificationError(message="x").kind == ErrorKind.CONCURRENT_MODIFICATION

    def test_validation_error_is_warning_with_field_errors(self):
        err = ValidationError(message="Invalid input", field_errors={"contact_email": "格式不正确"})
        assert err.severity == ErrorSeverity.WARNING
        assert err.field_errors["contact_email"] == "格式不正确"

    def test_invalid_attachment_is_validation(self):
        err = InvalidAttachmentError(message="too many")
        assert isinstance(err, ValidationError)
        assert err.kind == ErrorKind.INVALID_ATTACHMENT

    def test_profile_missing_is_authorization(self):
        err = ProfileMissingError(message="no profile")
        assert isinstance(err, AuthorizationError)
        assert err.kind == ErrorKind.PROFILE_MISSING

    def test_partial_upload_carries_stored_refs(self):
        err = PartialUploadError(message="boom", stored=["a", "b"])
        assert isinstance(err, DependencyFailureError)
        assert err.stored == ["a", "b"]

    def test_partial_finalization_is_critical(self):
        err = PartialFinalizationError(message="x", application_id="app-1", signed_contract_id="sc-1")
        assert err.severity == ErrorSeverity.CRITICAL
        assert (err.application_id, err.signed_contract_id) == ("app-1", "sc-1")

    def test_errors_are_raisable(self):
        with pytest.raises(FranchiseError):
            raise ConcurrentModificationError(message="stale")


class TestResult:
    def test_ok_result(self):
        result = Result.ok(42)
        assert result.is_ok() is True
        assert result.unwrap() == 42
        assert result.error() is None

    def test_err_result(self):
        err = FranchiseError(message="Failed")
        result = Result.err(err)
        assert result.is_ok() is False
        assert result.error() is err
        with pytest.raises(FranchiseError):
            result.unwrap()

    def test_unwrap_or_and_map(self):
        assert Result.err(FranchiseError(message="x")).unwrap_or(0) == 0
        assert Result.ok(2).map(lambda v: v * 3).unwrap() == 6
