from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from franchisehub.core.errors import DependencyFailureError, ValidationError
from franchisehub.infrastructure.storage.object_store import InMemoryObjectStore, LocalObjectStore, S3ObjectStore


@pytest.mark.parametrize("path", ["", "/etc/passwd", "a/../../b"])
def test_paths_escaping_root_are_rejected(path):
    with pytest.raises(ValidationError):
        InMemoryObjectStore().upload("b", path, b"x", content_type="text/plain")


def test_local_store_writes_under_bucket(tmp_path):
    store = LocalObjectStore(tmp_path, public_base_url="https://files.example.com/")
    path = store.upload("contracts", "signatures/s.png", b"png", content_type="image/png")
    assert (tmp_path / "contracts" / "signatures" / "s.png").read_bytes() == b"png"
    assert store.get_public_url("contracts", path) == "https://files.example.com/contracts/signatures/s.png"


def test_local_store_failure_is_dependency_failure(tmp_path):
    blocker = tmp_path / "contracts"
    blocker.write_text("not a directory")
    with pytest.raises(DependencyFailureError):
        LocalObjectStore(tmp_path).upload("contracts", "a.png", b"x", content_type="image/png")


def test_s3_store_puts_object_and_builds_url():
    client = MagicMock()
    store = S3ObjectStore(client=client, region_name="ap-east-1", bucket_map={"contracts": "fh-contracts"})
    path = store.upload("contracts", "signatures/s.png", b"png", content_type="image/png")
    client.put_object.assert_called_once_with(
        Bucket="fh-contracts", Key="signatures/s.png", Body=b"png", ContentType="image/png"
    )
    assert store.get_public_url("contracts", path) == "https://fh-contracts.s3.ap-east-1.amazonaws.com/signatures/s.png"


def test_s3_client_error_is_dependency_failure():
    client = MagicMock()
    client.put_object.side_effect = ClientError({"Error": {"Code": "503", "Message": "Slow Down"}}, "PutObject")
    with pytest.raises(DependencyFailureError):
        S3ObjectStore(client=client).upload("contracts", "a.png", b"x", content_type="image/png")
