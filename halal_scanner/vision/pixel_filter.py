"""
像素滤镜：对比度拉伸 + 锐化

为 OCR 提高配料表文字的可读性。纯函数，不做 I/O。
"""
import numpy as np

from halal_scanner.common import Logger
from .captured_image import CapturedImage, JPEG_QUALITY

CONTRAST_FACTOR = 1.25

# 十字锐化核:
#  0 -1  0
# -1  5 -1
#  0 -1  0
SHARPEN_CENTER = 5


def _color_channels(pixels: np.ndarray) -> int:
    # 只处理前三个颜色通道，alpha 保持不变
    if pixels.ndim == 2:
        return 0
    return min(3, pixels.shape[2])


def adjust_contrast(pixels: np.ndarray, contrast: float = CONTRAST_FACTOR) -> np.ndarray:
    """对比度拉伸: v' = (v - 128) * contrast + 128，截断到 [0, 255]"""
    out = pixels.copy()
    if pixels.ndim == 2:
        channels = np.s_[...]
    else:
        channels = np.s_[..., :_color_channels(pixels)]

    values = out[channels].astype(np.float32)
    values = (values - 128.0) * contrast + 128.0
    out[channels] = np.clip(np.rint(values), 0, 255).astype(np.uint8)
    return out


def sharpen(pixels: np.ndarray) -> np.ndarray:
    """十字核锐化

    卷积读取的是未修改的快照，写入不会影响后续窗口；
    最外一圈像素不处理。
    """
    out = pixels.copy()
    height, width = pixels.shape[:2]
    if height < 3 or width < 3:
        return out

    if pixels.ndim == 2:
        src = pixels.astype(np.int32)
        target = np.s_[1:-1, 1:-1]
    else:
        n = _color_channels(pixels)
        src = pixels[..., :n].astype(np.int32)
        target = np.s_[1:-1, 1:-1, :n]

    value = (src[1:-1, 1:-1] * SHARPEN_CENTER
             - src[:-2, 1:-1]
             - src[2:, 1:-1]
             - src[1:-1, :-2]
             - src[1:-1, 2:])

    out[target] = np.clip(value, 0, 255).astype(np.uint8)
    return out


def enhance_pixels(pixels: np.ndarray) -> np.ndarray:
    """先对比度，后锐化"""
    return sharpen(adjust_contrast(pixels))


class PixelFilter:
    """图片增强滤镜"""

    def __init__(self, quality: int = JPEG_QUALITY, log_dir=None):
        self.quality = quality
        self.logger = Logger(log_dir)

    def enhance(self, image: CapturedImage) -> CapturedImage:
        """增强图片，解码失败时原样返回"""
        pixels = image.decode()
        if pixels is None:
            self.logger.log("filter", "warning", "图片解码失败，跳过增强")
            return image

        enhanced = enhance_pixels(pixels)
        result = CapturedImage.from_array(enhanced, self.quality)
        self.logger.log("filter", "info", f"图片增强完成: {result.width}x{result.height}")
        return result
