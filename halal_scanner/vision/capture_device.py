"""
拍照设备（业务层）

职责：
1. 打开摄像头：首选配置失败时用基础配置重试一次
2. 能力探测：闪光灯、变焦
3. 单次拍照：快门延迟 -> 读取当前帧 -> JPEG 编码 -> 关闭设备
4. 资源管理：close()

状态：IDLE -> ACQUIRING -> STREAMING -> (CAPTURING -> STREAMING) -> CLOSED
      ACQUIRING -> ERRORED

不负责：
- 预览渲染（由 DisplaySurface 负责）
- 图片预处理、AI 分析
"""
import threading
import time
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Dict, Any

from halal_scanner.common import Logger
from halal_scanner.messages import get_message, DEFAULT_LANGUAGE
from .camera_backend import (
    CameraBackend,
    DeviceErrorKind,
    DisplaySurface,
    FrameStream,
    StreamConstraints,
    classify_acquisition_error,
)
from .captured_image import CapturedImage, JPEG_QUALITY

# 设备未报告最大变焦时的默认值
DEFAULT_ZOOM_MAX = 5.0

SHUTTER_DELAY = 0.15


class DeviceState(Enum):
    """设备状态"""
    IDLE = "idle"
    ACQUIRING = "acquiring"
    STREAMING = "streaming"
    CAPTURING = "capturing"
    CLOSED = "closed"
    ERRORED = "errored"


@dataclass(frozen=True)
class DeviceCapabilities:
    """设备能力快照（只读）"""
    supports_torch: bool = False
    torch_on: bool = False
    supports_zoom: bool = False
    zoom_level: float = 1.0
    zoom_max: float = DEFAULT_ZOOM_MAX


class CaptureDevice:
    """拍照设备

    每个实例同一时间最多持有一个视频流；拍照成功后设备即关闭，
    再次拍照需要新的实例。
    """

    def __init__(self,
                 backend: CameraBackend,
                 surface: Optional[DisplaySurface] = None,
                 resolution: Tuple[int, int] = (1280, 720),
                 shutter_delay: float = SHUTTER_DELAY,
                 quality: int = JPEG_QUALITY,
                 language: str = DEFAULT_LANGUAGE,
                 log_dir=None):
        """
        Args:
            backend: 摄像头后端
            surface: 预览表面（可选）
            resolution: 首选分辨率
            shutter_delay: 快门效果延迟（秒）
            quality: JPEG 质量
            language: 提示语言
            log_dir: 日志目录
        """
        self.backend = backend
        self.surface = surface
        self.resolution = resolution
        self.shutter_delay = shutter_delay
        self.quality = quality
        self.language = language
        self.logger = Logger(log_dir)

        self._state = DeviceState.IDLE
        self._stream: Optional[FrameStream] = None
        self._capabilities = DeviceCapabilities()
        self._is_capturing = False

        self.error_kind: Optional[DeviceErrorKind] = None
        self.error_message: str = ""

        # 保护状态切换（单写者）
        self._lock = threading.Lock()

    # ==================== 状态查询 ====================

    @property
    def state(self) -> DeviceState:
        return self._state

    @property
    def stream(self) -> Optional[FrameStream]:
        return self._stream

    @property
    def capabilities(self) -> DeviceCapabilities:
        return self._capabilities

    @property
    def is_capturing(self) -> bool:
        return self._is_capturing

    def get_status(self) -> Dict[str, Any]:
        """获取设备状态"""
        caps = self._capabilities
        return {
            "state": self._state.value,
            "is_capturing": self._is_capturing,
            "resolution": self._stream.resolution if self._stream else None,
            "supports_torch": caps.supports_torch,
            "torch_on": caps.torch_on,
            "supports_zoom": caps.supports_zoom,
            "zoom_level": caps.zoom_level,
            "zoom_max": caps.zoom_max,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
        }

    # ==================== 打开摄像头 ====================

    def open(self) -> bool:
        """打开摄像头

        失败不会抛出异常，只能通过 state / error_message 观察。

        Returns:
            是否进入 STREAMING 状态
        """
        with self._lock:
            if self._state != DeviceState.IDLE:
                self.logger.log("camera", "warning", f"设备状态为 {self._state.value}，忽略 open()")
                return self._state == DeviceState.STREAMING
            self._state = DeviceState.ACQUIRING

        self.error_kind = None
        self.error_message = ""

        try:
            supported = self.backend.is_supported()
        except Exception as e:
            self.logger.log("camera", "error", f"检测摄像头支持失败: {e}")
            supported = False

        if not supported:
            self._fail(DeviceErrorKind.UNSUPPORTED_PLATFORM)
            return False

        try:
            stream = self.backend.open_stream(StreamConstraints.preferred(self.resolution))
        except Exception as first_error:
            self.logger.log("camera", "warning", f"摄像头启动失败: {first_error}，使用基础配置重试...")
            try:
                stream = self.backend.open_stream(StreamConstraints.minimal())
            except Exception as fallback_error:
                self.logger.log("camera", "error", f"基础配置也失败: {fallback_error}")
                self._fail(classify_acquisition_error(fallback_error, first_error))
                return False

        with self._lock:
            if self._state != DeviceState.ACQUIRING:
                # 打开过程中被关闭
                stream.stop()
                return False
            self._stream = stream
            self._capabilities = self._probe_capabilities(stream)
            self._state = DeviceState.STREAMING

        if self.surface is not None:
            try:
                self.surface.bind(stream)
            except Exception as e:
                # 没有预览也可以拍照
                self.logger.log("camera", "warning", f"预览绑定失败: {e}")

        width, height = stream.resolution
        self.logger.log("camera", "info", f"摄像头已就绪 - 分辨率: {width}x{height}",
                        capabilities=asdict(self._capabilities))
        return True

    def _fail(self, kind: DeviceErrorKind):
        with self._lock:
            self._state = DeviceState.ERRORED
        self.error_kind = kind
        self.error_message = get_message(kind.value, self.language)
        self.logger.log("camera", "error", f"摄像头不可用: {kind.value}")

    def _probe_capabilities(self, stream: FrameStream) -> DeviceCapabilities:
        """探测闪光灯和变焦能力（每次成功打开后执行）"""
        try:
            track = stream.capabilities()
        except Exception as e:
            self.logger.log("camera", "warning", f"能力探测失败: {e}")
            return DeviceCapabilities()

        if not track.zoom_supported:
            return DeviceCapabilities(supports_torch=track.torch)

        zoom_max = track.zoom_max if track.zoom_max else DEFAULT_ZOOM_MAX
        if track.zoom is not None:
            zoom_level = track.zoom
        elif track.zoom_min is not None:
            zoom_level = track.zoom_min
        else:
            zoom_level = 1.0

        return DeviceCapabilities(
            supports_torch=track.torch,
            supports_zoom=True,
            zoom_level=zoom_level,
            zoom_max=zoom_max,
        )

    # ==================== 闪光灯 / 变焦 ====================

    def toggle_torch(self):
        """切换闪光灯（尽力而为，失败只记录日志）"""
        with self._lock:
            caps = self._capabilities
            stream = self._stream
            if not caps.supports_torch or stream is None or self._state != DeviceState.STREAMING:
                return

        target = not caps.torch_on
        try:
            stream.apply_constraint("torch", target)
        except Exception as e:
            self.logger.log("camera", "warning", f"闪光灯切换失败: {e}")
            return

        with self._lock:
            if self._stream is stream:
                self._capabilities = replace(self._capabilities, torch_on=target)

    def set_zoom(self, level: float):
        """设置变焦（范围由调用方保证在 [1, zoom_max]）"""
        with self._lock:
            caps = self._capabilities
            stream = self._stream
            if not caps.supports_zoom or stream is None or self._state != DeviceState.STREAMING:
                return

        try:
            stream.apply_constraint("zoom", level)
        except Exception as e:
            self.logger.log("camera", "warning", f"变焦设置失败: {e}")
            return

        with self._lock:
            if self._stream is stream:
                self._capabilities = replace(self._capabilities, zoom_level=level)

    # ==================== 拍照 ====================

    def capture(self) -> Optional[CapturedImage]:
        """单次拍照

        同一时间只允许一次拍照，重复调用直接忽略。成功后关闭设备。

        Returns:
            CapturedImage，被忽略或失败返回 None
        """
        with self._lock:
            if self._is_capturing:
                self.logger.log("camera", "info", "正在拍照，忽略重复请求")
                return None
            if self._state != DeviceState.STREAMING or self._stream is None:
                self.logger.log("camera", "warning", f"设备状态为 {self._state.value}，无法拍照")
                return None
            self._is_capturing = True
            self._state = DeviceState.CAPTURING
            stream = self._stream

        image = None
        try:
            # 快门效果
            if self.shutter_delay > 0:
                time.sleep(self.shutter_delay)

            frame = stream.read_frame()
            if frame is None:
                self.logger.log("camera", "error", "无法从摄像头读取图像")
            else:
                image = CapturedImage.from_array(frame, self.quality)
        except Exception as e:
            self.logger.log("camera", "error", f"捕获图像失败: {e}")

        with self._lock:
            self._is_capturing = False
            if self._state != DeviceState.CAPTURING:
                # 拍照过程中设备被关闭
                return None
            if image is None:
                self._state = DeviceState.STREAMING
                return None

        self.logger.log("camera", "info", f"拍照成功: {image.width}x{image.height}, {len(image.data)} 字节")
        self.close()
        return image

    # ==================== 资源管理 ====================

    def close(self):
        """关闭设备（可重复调用）"""
        with self._lock:
            stream = self._stream
            self._stream = None
            self._capabilities = DeviceCapabilities()
            if self._state != DeviceState.ERRORED:
                self._state = DeviceState.CLOSED

        if stream is None:
            return

        stream.stop()
        if self.surface is not None:
            try:
                self.surface.unbind()
            except Exception as e:
                self.logger.log("camera", "warning", f"预览解绑失败: {e}")
        self.logger.log("camera", "info", "摄像头已关闭")
