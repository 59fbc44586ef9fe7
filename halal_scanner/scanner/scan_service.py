"""
扫描服务（业务层）

一次扫描的完整流程：打开摄像头 -> 拍照 -> 预处理 -> 分析
全部在同一个调用线程上顺序执行。
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any

import httpx

from halal_scanner.ai import AIConfig, AIService, AnalysisResult, create_ai_service
from halal_scanner.ai.request_builder import ImageInput
from halal_scanner.common import Config, Logger
from halal_scanner.messages import get_message
from halal_scanner.vision import (
    CaptureDevice,
    CapturedImage,
    DeviceErrorKind,
    DeviceState,
    DisplaySurface,
    OpenCVCameraBackend,
)


@dataclass
class ScanOutcome:
    """扫描结果

    摄像头失败时 result 为空，device_error / message 说明原因；
    分析失败仍然返回 result（NON_FOOD，置信度 0）。
    """
    result: Optional[AnalysisResult] = None
    device_error: Optional[DeviceErrorKind] = None
    message: str = ""
    image: Optional[CapturedImage] = None

    @property
    def ok(self) -> bool:
        return self.result is not None and not self.result.is_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "result": self.result.to_dict() if self.result else None,
            "device_error": self.device_error.value if self.device_error else None,
            "message": self.message,
        }


class ScanService:
    """扫描服务

    职责：
    1. 驱动 CaptureDevice 完成一次拍照
    2. 按配置决定是否缩放 / 增强
    3. 调用 AIService 得到结果
    """

    def __init__(self,
                 ai_service: AIService,
                 enhance_image: bool = False,
                 downscale_image: bool = False,
                 log_dir=None):
        """
        Args:
            ai_service: AI 服务
            enhance_image: 默认是否增强
            downscale_image: 默认是否缩小
            log_dir: 日志目录
        """
        self.ai_service = ai_service
        self.enhance_image = enhance_image
        self.downscale_image = downscale_image
        self.logger = Logger(log_dir)

    def scan_image(self, image: ImageInput,
                   enhance: Optional[bool] = None,
                   downscale: Optional[bool] = None) -> ScanOutcome:
        """分析已有图片"""
        enhance = self.enhance_image if enhance is None else enhance
        downscale = self.downscale_image if downscale is None else downscale

        self.logger.log("scan", "info", f"开始分析 - enhance={enhance}, downscale={downscale}")
        result = self.ai_service.analyze_image(image, enhance=enhance, downscale=downscale)
        return ScanOutcome(result=result, message=result.reason,
                           image=image if isinstance(image, CapturedImage) else None)

    def scan_from_camera(self, device: CaptureDevice,
                         enhance: Optional[bool] = None,
                         downscale: Optional[bool] = None) -> ScanOutcome:
        """拍照并分析

        Args:
            device: 拍照设备（IDLE 状态会自动打开）

        Returns:
            ScanOutcome
        """
        if device.state == DeviceState.IDLE:
            device.open()

        if device.state == DeviceState.ERRORED:
            return ScanOutcome(device_error=device.error_kind, message=device.error_message)

        image = device.capture()
        if image is None:
            self.logger.log("scan", "error", f"拍照失败 - 设备状态: {device.state.value}")
            return ScanOutcome(device_error=DeviceErrorKind.UNKNOWN,
                               message=get_message(DeviceErrorKind.UNKNOWN.value, device.language))

        outcome = self.scan_image(image, enhance=enhance, downscale=downscale)
        outcome.image = image
        return outcome


# ==================== 工厂函数 ====================

def create_scan_service(config: Config, client: Optional[httpx.Client] = None) -> ScanService:
    """根据全局配置创建扫描服务"""
    ai_service = create_ai_service(AIConfig.from_config(config), client=client)
    return ScanService(
        ai_service,
        enhance_image=config.scan.enhance_image,
        downscale_image=config.scan.downscale_image,
        log_dir=config.log_dir
    )


def create_capture_device(config: Config, surface: Optional[DisplaySurface] = None) -> CaptureDevice:
    """根据全局配置创建拍照设备（OpenCV 后端）"""
    backend = OpenCVCameraBackend(camera_index=config.camera.camera_index, log_dir=config.log_dir)
    return CaptureDevice(
        backend,
        surface=surface,
        resolution=config.camera.resolution,
        shutter_delay=config.camera.shutter_delay,
        language=config.scan.language,
        log_dir=config.log_dir
    )
