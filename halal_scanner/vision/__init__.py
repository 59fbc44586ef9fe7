"""
Vision 模块 - 图像获取与预处理

架构：
┌─────────────────────────────────────┐
│     CaptureDevice (业务层)          │  ← 打开 / 拍照 / 闪光灯 / 变焦
├─────────────────────────────────────┤
│     CameraBackend (硬件层)          │  ← OpenCV 或测试替身
├─────────────────────────────────────┤
│     ImageScaler / PixelFilter       │  ← 缩放、对比度 + 锐化
└─────────────────────────────────────┘
"""

from .captured_image import (
    CapturedImage,
    JPEG_QUALITY,
    split_data_url,
)

from .camera_backend import (
    CameraBackend,
    FrameStream,
    DisplaySurface,
    StreamConstraints,
    TrackCapabilities,
    DeviceErrorKind,
    CameraAcquisitionError,
    ConstraintError,
    OpenCVCameraBackend,
)

from .capture_device import (
    CaptureDevice,
    DeviceCapabilities,
    DeviceState,
)

from .image_scaler import ImageScaler, fit_within
from .pixel_filter import PixelFilter, adjust_contrast, sharpen, enhance_pixels

__all__ = [
    # 图片
    'CapturedImage',
    'JPEG_QUALITY',
    'split_data_url',

    # 硬件层
    'CameraBackend',
    'FrameStream',
    'DisplaySurface',
    'StreamConstraints',
    'TrackCapabilities',
    'DeviceErrorKind',
    'CameraAcquisitionError',
    'ConstraintError',
    'OpenCVCameraBackend',

    # 业务层
    'CaptureDevice',
    'DeviceCapabilities',
    'DeviceState',

    # 预处理
    'ImageScaler',
    'fit_within',
    'PixelFilter',
    'adjust_contrast',
    'sharpen',
    'enhance_pixels',
]
