"""
Document Object Manager

负责资质文件、签名图片、合同模板文件的上传，并返回可存入记录的定位符。

校验全部在任何网络调用之前完成（要么整批合法，要么一个都不传）；
批量上传中途失败时不自动重试也不回滚，PartialUploadError 携带已成功的文件供调用方续传。
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional, Sequence

from werkzeug.utils import secure_filename

from franchisehub.application import tables
from franchisehub.application.ports.object_store_port import ObjectStorePort
from franchisehub.core.errors import (
    DependencyFailureError,
    InvalidAttachmentError,
    PartialUploadError,
)
from franchisehub.domain.application import DocumentRef
from franchisehub.domain.timeutil import new_id

logger = logging.getLogger(__name__)

MB = 1024 * 1024
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
DATA_URL_PREFIX = "data:image/png;base64,"

_EXTENSIONS = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


@dataclass
class DocumentPolicy:
    max_files: int = 3
    max_file_size_bytes: int = 5 * MB
    allowed_mime_types: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"application/pdf", "image/jpeg", "image/png"})
    )


@dataclass
class UploadFile:
    """待上传文件（由展示层从表单构造）"""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _millis() -> int:
    return int(time.time() * 1000)


def safe_object_name(name: str, content_type: str) -> str:
    """对象存储 key 中的文件名；主名与扩展名分别清洗，非 ASCII 主名替换为 file。"""
    stem, ext = os.path.splitext(name or "")
    stem = secure_filename(stem) or "file"
    ext = secure_filename(ext) or _EXTENSIONS.get(content_type, "").lstrip(".")
    return f"{stem}.{ext}" if ext else stem


class DocumentObjectManager:
    def __init__(
        self,
        objects: ObjectStorePort,
        policy: Optional[DocumentPolicy] = None,
        *,
        clock: Callable[[], int] = _millis,
    ):
        self._objects = objects
        self.policy = policy or DocumentPolicy()
        self._clock = clock

    def validate(self, files: Sequence[UploadFile]) -> None:
        field_errors = {}
        if len(files) > self.policy.max_files:
            raise InvalidAttachmentError(
                message=f"最多上传 {self.policy.max_files} 个文件",
                field_errors={"documents": f"too many files ({len(files)} > {self.policy.max_files})"},
            )
        limit_mb = self.policy.max_file_size_bytes / MB
        for f in files:
            if f.size > self.policy.max_file_size_bytes:
                field_errors[f.name] = f"文件太大，每个文件不超过 {limit_mb:g}MB"
            elif f.content_type not in self.policy.allowed_mime_types:
                field_errors[f.name] = f"不支持的文件类型 {f.content_type}"
            elif f.size == 0:
                field_errors[f.name] = "文件为空"
        if field_errors:
            raise InvalidAttachmentError(message="资质文件不符合要求", field_errors=field_errors)

    def upload_supporting_documents(self, owner_id: str, files: Sequence[UploadFile]) -> List[DocumentRef]:
        """按输入顺序返回定位符。"""
        files = list(files)
        self.validate(files)

        stored: List[DocumentRef] = []
        for f in files:
            path = self._object_key(owner_id, f.name, f.content_type)
            try:
                ref = self._put(tables.DOCUMENTS_BUCKET, path, f)
            except DependencyFailureError as e:
                logger.error(f"upload of {f.name} failed after {len(stored)} stored: {e}")
                raise PartialUploadError(
                    message=f"上传文件 {f.name} 失败: {e.message}",
                    stored=list(stored),
                    context={"owner_id": owner_id, "failed_file": f.name},
                )
            stored.append(ref)
        logger.info(f"stored {len(stored)} supporting documents for {owner_id}")
        return stored

    def upload_signature(self, principal_id: str, signature_image: bytes | str) -> DocumentRef:
        """签名图片：接受 PNG 字节或 data:image/png;base64 URL。"""
        data = decode_signature_image(signature_image)
        name = f"signature-{principal_id}-{self._clock()}-{new_id()}.png"
        return self._put(tables.CONTRACTS_BUCKET, f"signatures/{name}", UploadFile(name, "image/png", data))

    def upload_template_file(self, file: UploadFile) -> DocumentRef:
        if file.content_type != "application/pdf":
            raise InvalidAttachmentError(
                message="合同模板必须是 PDF 文件",
                field_errors={file.name: f"不支持的文件类型 {file.content_type}"},
            )
        if file.size == 0 or file.size > self.policy.max_file_size_bytes:
            raise InvalidAttachmentError(message="合同模板文件大小不合法", field_errors={file.name: "size"})
        path = self._object_key("contract-templates", file.name, file.content_type)
        return self._put(tables.TEMPLATES_BUCKET, path, file)

    def _object_key(self, prefix: str, name: str, content_type: str) -> str:
        # 清洗后的文件名可能相同（非 ASCII 都变成 file），每个对象另加随机段
        return f"{prefix}/{self._clock()}-{new_id()}-{safe_object_name(name, content_type)}"

    def public_url(self, bucket: str, path: str) -> str:
        return self._objects.get_public_url(bucket, path)

    def _put(self, bucket: str, path: str, f: UploadFile) -> DocumentRef:
        stored_path = self._objects.upload(bucket, path, f.data, content_type=f.content_type)
        url = self._objects.get_public_url(bucket, stored_path)
        return DocumentRef(name=f.name, url=url, type=f.content_type, size=f.size, storage_path=stored_path)


def decode_signature_image(signature_image: bytes | str) -> bytes:
    if isinstance(signature_image, str):
        if not signature_image.startswith(DATA_URL_PREFIX):
            raise InvalidAttachmentError(message="签名必须是 PNG 图片", field_errors={"signature": "format"})
        try:
            data = base64.b64decode(signature_image[len(DATA_URL_PREFIX):], validate=True)
        except (binascii.Error, ValueError):
            raise InvalidAttachmentError(message="签名图片编码无效", field_errors={"signature": "base64"})
    else:
        data = bytes(signature_image or b"")
    if not data.startswith(PNG_MAGIC):
        raise InvalidAttachmentError(message="请先在签名区域签名", field_errors={"signature": "empty"})
    return data
