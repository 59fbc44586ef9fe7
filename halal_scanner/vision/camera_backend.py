"""
摄像头后端（硬件层）

CaptureDevice 只依赖这里的抽象接口：
- CameraBackend: 按约束打开视频流
- FrameStream: 读取帧、查询能力、应用约束、停止
- DisplaySurface: 只读的预览表面

OpenCVCameraBackend 是默认实现，测试中可以替换为假后端。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import cv2
import numpy as np

from halal_scanner.common import Logger


class FacingMode:
    """摄像头朝向"""
    ENVIRONMENT = "environment"  # 后置
    USER = "user"                # 前置


class DeviceErrorKind(Enum):
    """摄像头错误类型"""
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "camera_not_found"
    BUSY = "camera_busy"
    UNKNOWN = "camera_unknown"


class CameraAcquisitionError(Exception):
    """打开摄像头失败"""

    def __init__(self, message: str, kind: Optional[DeviceErrorKind] = None):
        super().__init__(message)
        self.kind = kind


class ConstraintError(Exception):
    """视频轨道不接受某个约束（闪光灯、变焦）"""


@dataclass(frozen=True)
class StreamConstraints:
    """打开视频流时的约束"""
    facing_mode: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    continuous_focus: bool = False

    @classmethod
    def preferred(cls, resolution: Tuple[int, int] = (1280, 720)) -> 'StreamConstraints':
        """首选配置：后置摄像头、较高分辨率、连续对焦"""
        width, height = resolution
        return cls(facing_mode=FacingMode.ENVIRONMENT, width=width, height=height,
                   continuous_focus=True)

    @classmethod
    def minimal(cls) -> 'StreamConstraints':
        """基础配置：任意摄像头，不指定分辨率"""
        return cls()

    @property
    def is_minimal(self) -> bool:
        return self.facing_mode is None and self.width is None and self.height is None


@dataclass(frozen=True)
class TrackCapabilities:
    """视频轨道声明的能力（原始数据，可能不完整）"""
    torch: bool = False
    zoom_supported: bool = False
    zoom_min: Optional[float] = None
    zoom_max: Optional[float] = None
    zoom: Optional[float] = None


class FrameStream(ABC):
    """已打开的视频流"""

    facing_mode: Optional[str] = None

    @property
    @abstractmethod
    def resolution(self) -> Tuple[int, int]:
        """协商后的分辨率 (width, height)"""

    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """读取当前帧（BGR），失败返回 None"""

    @abstractmethod
    def capabilities(self) -> TrackCapabilities:
        """查询轨道能力"""

    @abstractmethod
    def apply_constraint(self, name: str, value):
        """应用约束

        Raises:
            ConstraintError: 轨道不支持或设置失败
        """

    @abstractmethod
    def stop(self):
        """停止所有轨道"""


class CameraBackend(ABC):
    """摄像头后端"""

    @abstractmethod
    def is_supported(self) -> bool:
        """当前平台是否能使用摄像头"""

    @abstractmethod
    def open_stream(self, constraints: StreamConstraints) -> FrameStream:
        """按约束打开视频流

        Raises:
            CameraAcquisitionError: 打开失败
        """


class DisplaySurface(ABC):
    """预览表面，只读取视频流，不修改它"""

    @abstractmethod
    def bind(self, stream: FrameStream):
        pass

    @abstractmethod
    def unbind(self):
        pass


# ==================== 错误分类 ====================

_ACQUISITION_RULES = [
    (DeviceErrorKind.PERMISSION_DENIED, ("permission", "not authorized", "notallowed", "denied")),
    (DeviceErrorKind.NOT_FOUND, ("not found", "notfound", "no camera", "no device")),
    (DeviceErrorKind.BUSY, ("busy", "in use", "notreadable", "not readable")),
]


def classify_acquisition_error(*errors: Optional[BaseException]) -> DeviceErrorKind:
    """把打开失败的异常归类

    按顺序检查每个异常（通常是 fallback 异常在前，首次异常在后），
    返回第一个能识别的类型。
    """
    for error in errors:
        if error is None:
            continue
        kind = getattr(error, "kind", None)
        if isinstance(kind, DeviceErrorKind):
            return kind
        if isinstance(error, PermissionError):
            return DeviceErrorKind.PERMISSION_DENIED

        text = f"{type(error).__name__} {error}".lower()
        for rule_kind, needles in _ACQUISITION_RULES:
            if any(needle in text for needle in needles):
                return rule_kind

    return DeviceErrorKind.UNKNOWN


# ==================== OpenCV 实现 ====================

class OpenCVFrameStream(FrameStream):
    """基于 cv2.VideoCapture 的视频流

    OpenCV 没有通用的闪光灯属性；变焦通过 CAP_PROP_ZOOM，
    level 是相对于打开时数值的倍数。
    """

    def __init__(self, cap: cv2.VideoCapture, camera_index: int,
                 facing_mode: Optional[str] = None):
        self.cap = cap
        self.camera_index = camera_index
        self.facing_mode = facing_mode
        self._zoom_base = cap.get(cv2.CAP_PROP_ZOOM)

    @property
    def resolution(self) -> Tuple[int, int]:
        width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return width, height

    def read_frame(self) -> Optional[np.ndarray]:
        if self.cap is None or not self.cap.isOpened():
            return None

        # 清空缓冲区：读取并丢弃2帧以获取最新画面
        for _ in range(2):
            self.cap.read()

        ret, frame = self.cap.read()
        return frame if ret else None

    def capabilities(self) -> TrackCapabilities:
        if self._zoom_base is None or self._zoom_base <= 0:
            return TrackCapabilities()
        return TrackCapabilities(zoom_supported=True, zoom_min=1.0, zoom=1.0)

    def apply_constraint(self, name: str, value):
        if name == "zoom" and self._zoom_base and self._zoom_base > 0:
            if not self.cap.set(cv2.CAP_PROP_ZOOM, self._zoom_base * float(value)):
                raise ConstraintError(f"摄像头拒绝变焦值: {value}")
            return
        raise ConstraintError(f"不支持的约束: {name}")

    def stop(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class OpenCVCameraBackend(CameraBackend):
    """OpenCV 摄像头后端"""

    def __init__(self, camera_index: int = 0, max_probe_index: int = 6, log_dir=None):
        """
        Args:
            camera_index: 首选摄像头索引（通常配置为后置摄像头）
            max_probe_index: 基础配置下自动检测的索引上限
            log_dir: 日志目录
        """
        self.camera_index = camera_index
        self.max_probe_index = max_probe_index
        self.logger = Logger(log_dir)

    def is_supported(self) -> bool:
        return hasattr(cv2, "VideoCapture")

    def open_stream(self, constraints: StreamConstraints) -> FrameStream:
        if constraints.is_minimal:
            # 自动检测可用摄像头
            indices = [self.camera_index] + [i for i in range(self.max_probe_index)
                                             if i != self.camera_index]
        else:
            indices = [self.camera_index]

        last_error: Optional[CameraAcquisitionError] = None
        for index in indices:
            try:
                return self._open_index(index, constraints)
            except CameraAcquisitionError as e:
                last_error = e

        raise last_error or CameraAcquisitionError("未找到可用的摄像头", DeviceErrorKind.NOT_FOUND)

    def _open_index(self, index: int, constraints: StreamConstraints) -> FrameStream:
        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise CameraAcquisitionError(f"无法打开摄像头 (索引: {index})", DeviceErrorKind.NOT_FOUND)

        # 设置分辨率
        if constraints.width and constraints.height:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)

        if constraints.continuous_focus:
            cap.set(cv2.CAP_PROP_AUTOFOCUS, 1)

        # 设置缓冲区大小为1，减少滞后
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        # 能打开但读不到帧，通常是被其他程序占用
        ret, _ = cap.read()
        if not ret:
            cap.release()
            raise CameraAcquisitionError(f"摄像头无法读取 (索引: {index})", DeviceErrorKind.BUSY)

        self.logger.log("camera", "info", f"摄像头已打开 - 索引: {index}")
        return OpenCVFrameStream(cap, index, constraints.facing_mode)
