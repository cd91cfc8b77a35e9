# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import franchisehub` works without installing.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

import pytest  # noqa: E402

from franchisehub.application import tables  # noqa: E402
from franchisehub.application.bootstrap import build_services  # noqa: E402
from franchisehub.application.context import RequestContext  # noqa: E402
from franchisehub.application.services.document_manager import PNG_MAGIC, UploadFile  # noqa: E402
from franchisehub.config.settings import RetryConfig, Settings  # noqa: E402
from franchisehub.domain.identity import AccountStatus, Principal, Profile, Role  # noqa: E402
from franchisehub.domain.timeutil import new_id  # noqa: E402
from franchisehub.infrastructure.event_log.memory_event_log import InMemoryEventLog  # noqa: E402
from franchisehub.infrastructure.storage.object_store import InMemoryObjectStore  # noqa: E402
from franchisehub.infrastructure.stores.memory_record_store import InMemoryRecordStore  # noqa: E402

SIGNATURE_PNG = PNG_MAGIC + b"\x00\x00\x00\rIHDR" + b"\x00" * 32


@pytest.fixture
def settings():
    return Settings(retry=RetryConfig(max_retries=2, base_backoff_s=0.0, max_backoff_s=0.0))


@pytest.fixture
def records():
    return InMemoryRecordStore()


@pytest.fixture
def objects():
    return InMemoryObjectStore()


@pytest.fixture
def events():
    return InMemoryEventLog()


@pytest.fixture
def services(settings, records, objects, events):
    return build_services(settings, records=records, objects=objects, events=events)


@pytest.fixture
def make_user(records):
    """插入一个档案并返回该用户的 RequestContext。"""

    def _make(
        role: Role = Role.APPLICANT,
        status: AccountStatus = AccountStatus.ACTIVE,
        *,
        full_name: str = "测试用户",
        user_id: str = None,
    ) -> RequestContext:
        uid = user_id or new_id()
        profile = Profile(id=uid, full_name=full_name, role=role, status=status, email=f"{uid[:8]}@example.com")
        records.insert(tables.PROFILES, profile.to_record())
        return RequestContext(principal=Principal(id=uid, email=profile.email or ""), profile=profile)

    return _make


@pytest.fixture
def applicant(make_user):
    return make_user(Role.APPLICANT, full_name="李华")


@pytest.fixture
def reviewer(make_user):
    return make_user(Role.HQ_RECRUITER, full_name="王审核")


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, full_name="管理员")


@pytest.fixture
def application_form():
    return {
        "contact_name": "李华",
        "contact_phone": "13800000000",
        "contact_email": "lihua@example.com",
        "intended_city": "Shanghai",
        "investment_amount": "80万",
        "experience_description": "十年餐饮管理经验",
    }


@pytest.fixture
def pdf_file():
    return UploadFile(name="license.pdf", content_type="application/pdf", data=b"%PDF-1.4 test")


@pytest.fixture
def signature_png():
    return SIGNATURE_PNG
