"""
图片缩放：保持宽高比缩小到最大尺寸以内，控制上传大小
"""
import io
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from halal_scanner.common import Logger
from .captured_image import CapturedImage, JPEG_QUALITY

MAX_WIDTH = 2000
MAX_HEIGHT = 2000


def fit_within(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """计算缩放后的尺寸（只缩小，不放大）"""
    if width <= max_width and height <= max_height:
        return width, height

    ratio = min(max_width / width, max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


class ImageScaler:
    """等比例缩小图片"""

    def __init__(self, quality: int = JPEG_QUALITY, log_dir=None):
        self.quality = quality
        self.logger = Logger(log_dir)

    def downscale(self, image: CapturedImage,
                  max_width: int = MAX_WIDTH,
                  max_height: int = MAX_HEIGHT) -> CapturedImage:
        """超过上限时缩小，否则原样返回；解码失败也原样返回"""
        try:
            img = Image.open(io.BytesIO(image.data))
            img.load()
            # 按 EXIF 方向摆正，与 OpenCV 解码结果保持一致
            img = ImageOps.exif_transpose(img)
        except (UnidentifiedImageError, OSError) as e:
            self.logger.log("scaler", "warning", f"图片解码失败，跳过缩放: {e}")
            return image

        width, height = img.size
        target = fit_within(width, height, max_width, max_height)

        # 如果图片已经小于等于目标尺寸，不需要调整
        if target == (width, height):
            return image

        if img.mode != "RGB":
            img = img.convert("RGB")
        resized = img.resize(target, Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        resized.save(buffer, "JPEG", quality=self.quality)

        self.logger.log("scaler", "info", f"图片调整: {width}x{height} -> {target[0]}x{target[1]}")
        return CapturedImage(data=buffer.getvalue(), mime_type="image/jpeg",
                             width=target[0], height=target[1])
