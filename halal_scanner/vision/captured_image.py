"""
拍摄得到的静态图片（不可变）

所有预处理步骤都在这个快照上进行，不会触碰实时视频流
"""
import base64
import binascii
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

# 拍摄、缩放、增强统一使用的 JPEG 质量
JPEG_QUALITY = 90

DATA_URL_PREFIX = re.compile(r"^data:image/(png|jpg|jpeg|webp);base64,")

_MIME_BY_SUFFIX = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def split_data_url(payload: str) -> Tuple[str, str]:
    """拆分 data URL

    Returns:
        (mime_type, base64 内容)；没有前缀时默认 image/jpeg
    """
    match = DATA_URL_PREFIX.match(payload)
    if not match:
        return "image/jpeg", payload
    subtype = match.group(1)
    if subtype == "jpg":
        subtype = "jpeg"
    return f"image/{subtype}", payload[match.end():]


def encode_jpeg(pixels: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
    """把像素数组编码为 JPEG"""
    ok, buffer = cv2.imencode(".jpg", pixels, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise ValueError("JPEG 编码失败")
    return buffer.tobytes()


@dataclass(frozen=True)
class CapturedImage:
    """编码后的静态图片"""
    data: bytes
    mime_type: str = "image/jpeg"
    width: int = 0
    height: int = 0

    @classmethod
    def from_array(cls, pixels: np.ndarray, quality: int = JPEG_QUALITY) -> 'CapturedImage':
        """从像素数组（BGR）创建"""
        height, width = pixels.shape[:2]
        return cls(data=encode_jpeg(pixels, quality), mime_type="image/jpeg",
                   width=width, height=height)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str = "image/jpeg") -> 'CapturedImage':
        """从编码数据创建，尺寸通过解码读取（解码失败则为 0）"""
        width, height = _probe_size(data)
        return cls(data=data, mime_type=mime_type, width=width, height=height)

    @classmethod
    def from_data_url(cls, payload: str) -> 'CapturedImage':
        """从 data URL 或纯 base64 字符串创建

        Raises:
            ValueError: base64 内容无效
        """
        mime_type, content = split_data_url(payload.strip())
        try:
            data = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"无效的 base64 图片数据: {e}") from e
        return cls.from_bytes(data, mime_type)

    @classmethod
    def from_file(cls, path) -> 'CapturedImage':
        """从图片文件创建"""
        path = Path(path)
        mime_type = _MIME_BY_SUFFIX.get(path.suffix.lower(), "image/jpeg")
        return cls.from_bytes(path.read_bytes(), mime_type)

    def decode(self) -> Optional[np.ndarray]:
        """解码为像素数组（BGR），失败返回 None"""
        if not self.data:
            return None
        buffer = np.frombuffer(self.data, dtype=np.uint8)
        return cv2.imdecode(buffer, cv2.IMREAD_COLOR)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


def _probe_size(data: bytes) -> Tuple[int, int]:
    if not data:
        return 0, 0
    pixels = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if pixels is None:
        return 0, 0
    height, width = pixels.shape[:2]
    return width, height
