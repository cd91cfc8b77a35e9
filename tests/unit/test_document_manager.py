import base64

import pytest

from franchisehub.application import tables
from franchisehub.application.services.document_manager import (
    MB,
    DocumentObjectManager,
    DocumentPolicy,
    UploadFile,
    decode_signature_image,
    safe_object_name,
)
from franchisehub.core.errors import DependencyFailureError, InvalidAttachmentError, PartialUploadError
from franchisehub.infrastructure.storage.object_store import InMemoryObjectStore


class CountingStore(InMemoryObjectStore):
    def __init__(self, fail_on: int = 0):
        super().__init__()
        self.calls = 0
        self.fail_on = fail_on

    def upload(self, bucket, path, data, *, content_type):
        self.calls += 1
        if self.fail_on and self.calls == self.fail_on:
            raise DependencyFailureError(message="storage down")
        return super().upload(bucket, path, data, content_type=content_type)


def _files(n, content_type="application/pdf", size=1024):
    ext = {"application/pdf": "pdf", "image/png": "png", "image/jpeg": "jpg"}[content_type]
    return [UploadFile(name=f"doc{i}.{ext}", content_type=content_type, data=b"x" * size) for i in range(n)]


def _manager(store):
    ticks = iter(range(1000, 2000))
    return DocumentObjectManager(store, DocumentPolicy(), clock=lambda: next(ticks))


def test_four_files_fail_before_any_upload():
    store = CountingStore()
    with pytest.raises(InvalidAttachmentError):
        _manager(store).upload_supporting_documents("u-1", _files(4))
    assert store.calls == 0


def test_three_valid_files_return_refs_in_input_order():
    store = CountingStore()
    files = [
        UploadFile("营业执照.pdf", "application/pdf", b"%PDF" + b"0" * 100),
        UploadFile("id.jpg", "image/jpeg", b"\xff\xd8" + b"0" * 100),
        UploadFile("shop.png", "image/png", b"\x89PNG" + b"0" * 100),
    ]
    refs = _manager(store).upload_supporting_documents("u-1", files)
    assert [r.name for r in refs] == ["营业执照.pdf", "id.jpg", "shop.png"]
    assert [r.type for r in refs] == ["application/pdf", "image/jpeg", "image/png"]
    assert all(r.storage_path.startswith("u-1/") for r in refs)
    assert store.calls == 3
    assert store.read(tables.DOCUMENTS_BUCKET, refs[1].storage_path) == files[1].data


def test_oversized_file_rejected_before_upload():
    store = CountingStore()
    files = _files(2) + [UploadFile("big.pdf", "application/pdf", b"x" * (5 * MB + 1))]
    with pytest.raises(InvalidAttachmentError) as exc:
        _manager(store).upload_supporting_documents("u-1", files)
    assert "big.pdf" in exc.value.field_errors
    assert store.calls == 0


def test_exactly_five_mb_is_allowed():
    store = CountingStore()
    refs = _manager(store).upload_supporting_documents("u-1", [UploadFile("ok.pdf", "application/pdf", b"x" * (5 * MB))])
    assert len(refs) == 1


@pytest.mark.parametrize("content_type", ["image/gif", "application/zip", "text/plain"])
def test_disallowed_mime_rejected(content_type):
    store = CountingStore()
    with pytest.raises(InvalidAttachmentError):
        _manager(store).upload_supporting_documents("u-1", [UploadFile("a.bin", content_type, b"x")])
    assert store.calls == 0


def test_mid_batch_failure_reports_stored_refs():
    store = CountingStore(fail_on=3)
    with pytest.raises(PartialUploadError) as exc:
        _manager(store).upload_supporting_documents("u-1", _files(3))
    assert [r.name for r in exc.value.stored] == ["doc0.pdf", "doc1.pdf"]
    assert store.calls == 3


def test_policy_limits_are_configurable():
    store = CountingStore()
    manager = DocumentObjectManager(store, DocumentPolicy(max_files=1))
    with pytest.raises(InvalidAttachmentError):
        manager.upload_supporting_documents("u-1", _files(2))


def test_signature_accepts_png_bytes_and_data_url(signature_png):
    store = CountingStore()
    manager = _manager(store)
    ref = manager.upload_signature("u-1", signature_png)
    assert ref.storage_path.startswith("signatures/signature-u-1-")
    assert ref.type == "image/png"

    data_url = "data:image/png;base64," + base64.b64encode(signature_png).decode()
    assert decode_signature_image(data_url) == signature_png


@pytest.mark.parametrize("bad", [b"", b"GIF89a....", "data:image/png;base64,@@@", "data:image/jpeg;base64,AAAA"])
def test_signature_rejects_non_png(bad):
    with pytest.raises(InvalidAttachmentError):
        decode_signature_image(bad)


def test_template_file_must_be_pdf():
    store = CountingStore()
    with pytest.raises(InvalidAttachmentError):
        _manager(store).upload_template_file(UploadFile("t.png", "image/png", b"\x89PNG"))
    assert store.calls == 0


def test_safe_object_name_keeps_extension_for_non_ascii():
    assert safe_object_name("营业执照.pdf", "application/pdf") == "file.pdf"
    assert safe_object_name("../../etc/passwd", "application/pdf") == "etc_passwd.pdf"
    assert safe_object_name("shop.PNG", "image/png") == "shop.PNG"


def test_same_millisecond_non_ascii_names_get_distinct_objects():
    store = CountingStore()
    manager = DocumentObjectManager(store, DocumentPolicy(), clock=lambda: 1700000000000)
    files = [
        UploadFile("营业执照.pdf", "application/pdf", b"%PDF-A"),
        UploadFile("身份证.pdf", "application/pdf", b"%PDF-B"),
        UploadFile("营业执照.pdf", "application/pdf", b"%PDF-C"),
    ]
    refs = manager.upload_supporting_documents("u1", files)

    assert len({r.storage_path for r in refs}) == 3
    assert [store.read(tables.DOCUMENTS_BUCKET, r.storage_path) for r in refs] == [f.data for f in files]
    assert all(r.storage_path.endswith("-file.pdf") for r in refs)
