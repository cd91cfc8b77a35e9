"""
二进制对象存储实现

- InMemoryObjectStore: 测试用
- LocalObjectStore: 本地目录（开发环境），URL 由 public_base_url 拼接
- S3ObjectStore: S3 兼容存储（boto3），bucket 名可通过 bucket_map 映射到实际桶
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path, PurePosixPath
from typing import Dict, Mapping, Optional, Tuple
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from franchisehub.application.ports.object_store_port import ObjectStorePort
from franchisehub.core.errors import DependencyFailureError, ValidationError

logger = logging.getLogger(__name__)


def _clean_path(path: str) -> str:
    """拒绝绝对路径与 .. ，避免写出存储根目录。"""
    p = PurePosixPath(path or "")
    if not path or p.is_absolute() or ".." in p.parts:
        raise ValidationError(message=f"Invalid object path: {path!r}", context={"path": path})
    return str(p)


def _join_url(base: str, bucket: str, path: str) -> str:
    return f"{base.rstrip('/')}/{quote(bucket)}/{quote(path)}"


class InMemoryObjectStore(ObjectStorePort):
    def __init__(self, public_base_url: str = "memory://objects") -> None:
        self.public_base_url = public_base_url
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: str) -> str:
        path = _clean_path(path)
        with self._lock:
            self.objects[(bucket, path)] = (bytes(data), content_type)
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return _join_url(self.public_base_url, bucket, path)

    def read(self, bucket: str, path: str) -> bytes:
        return self.objects[(bucket, path)][0]


class LocalObjectStore(ObjectStorePort):
    """对象落在 root_dir/<bucket>/<path>。"""

    def __init__(self, root_dir: Path | str, public_base_url: str = "/files") -> None:
        self.root_dir = Path(root_dir)
        self.public_base_url = public_base_url

    def _file(self, bucket: str, path: str) -> Path:
        return self.root_dir / _clean_path(bucket) / _clean_path(path)

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: str) -> str:
        target = self._file(bucket, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"local object store write failed for {bucket}/{path}: {e}")
            raise DependencyFailureError(
                message=f"Object store unavailable: {e}", context={"bucket": bucket, "path": path}
            ) from e
        return _clean_path(path)

    def get_public_url(self, bucket: str, path: str) -> str:
        return _join_url(self.public_base_url, bucket, path)

    def read(self, bucket: str, path: str) -> bytes:
        return self._file(bucket, path).read_bytes()


class S3ObjectStore(ObjectStorePort):
    def __init__(
        self,
        *,
        client=None,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        bucket_map: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._client = client or boto3.client("s3", region_name=region_name, endpoint_url=endpoint_url)
        self.region_name = region_name
        self.public_base_url = public_base_url
        self.bucket_map = dict(bucket_map or {})

    def _bucket(self, bucket: str) -> str:
        return self.bucket_map.get(bucket, bucket)

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: str) -> str:
        path = _clean_path(path)
        try:
            self._client.put_object(Bucket=self._bucket(bucket), Key=path, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"s3 put_object failed for {bucket}/{path}: {e}")
            raise DependencyFailureError(
                message=f"Object store unavailable: {e}", context={"bucket": bucket, "path": path}
            ) from e
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        real = self._bucket(bucket)
        if self.public_base_url:
            return _join_url(self.public_base_url, real, path)
        region = self.region_name or "us-east-1"
        return f"https://{real}.s3.{region}.amazonaws.com/{quote(path)}"
