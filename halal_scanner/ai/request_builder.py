"""
分析请求构建

流程固定：先缩放（限制上传大小），再增强（在已缩小的图片上，耗时可控）。
任何一步失败都回退到上一步的结果，不中断请求。
"""
import copy
from dataclasses import dataclass
from typing import Any, Dict, Union

from halal_scanner.common import Logger
from halal_scanner.messages import LANGUAGE_NAMES, DEFAULT_LANGUAGE
from halal_scanner.vision.captured_image import CapturedImage
from halal_scanner.vision.image_scaler import ImageScaler, MAX_WIDTH, MAX_HEIGHT
from halal_scanner.vision.pixel_filter import PixelFilter
from .models import HalalStatus, INGREDIENT_STATUSES

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "status": {
            "type": "STRING",
            "enum": [status.value for status in HalalStatus],
            "description": "The overall Halal status of the product.",
        },
        "reason": {
            "type": "STRING",
            "description": "A short, clear explanation of the decision based on the ingredients found.",
        },
        "ingredientsDetected": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {
                        "type": "STRING",
                        "description": "The name of the ingredient.",
                    },
                    "status": {
                        "type": "STRING",
                        "enum": [status.value for status in INGREDIENT_STATUSES],
                        "description": "The status of this specific ingredient.",
                    },
                },
                "required": ["name", "status"],
            },
            "description": "Key ingredients found in the image with their individual status.",
        },
        "confidence": {
            "type": "INTEGER",
            "description": "0-100 confidence based on image clarity and text readability.",
        },
    },
    "required": ["status", "reason", "ingredientsDetected", "confidence"],
}

PROMPT_TEMPLATE = """
You are an expert Islamic food auditor. Inspect the food product in the image with great precision.
Write "reason" and every ingredient "name" in {language}.

STAGE 0 - CHECK THE IMAGE TYPE (decisive):
1. Barcode or non-food:
   - If the image shows only a barcode or QR code, or a clearly non-food object
     (electronics, clothes, a car, a human face, medicine, furniture):
   - status: NON_FOOD
   - reason: this is not a food product or only a barcode; ask the user to photograph the ingredient list.
   - confidence: 100
   - ingredientsDetected: []
2. Image quality and completeness (food products only):
   - If the image is blurry or the text is unreadable:
     status: DOUBTFUL, reason: the data is unclear; ask for a closer, sharper photo.
   - If the image is clear but shows only the product name, branding or nutrition facts
     (calories) without the ingredient list:
     status: DOUBTFUL, reason: product data incomplete; ask the user to photograph the ingredient list.

STAGE 1 - INGREDIENT ANALYSIS (only when stage 0 passed and the product is food):
- Read every word of the ingredient list (OCR), including hidden ingredients and E-numbers.

LIST 1 - ALWAYS HALAL:
- Vegetables, water, salt, sugar, vegetable oils, spices.
- Xanthan gum, guar gum, citric acid, sodium benzoate.
- Natural flavourings (unless stated as animal).
- Emulsifiers (E471 etc.) and stabilisers, unless an explicit animal source is stated.

LIST 2 - PROHIBITED AND DOUBTFUL (decides the result):
1. HARAM:
   - Pork (pork, lard, bacon).
   - Alcohol / ethanol (alcohol, wine).
   - Carmine (E120).
   - Any ingredient explicitly of non-halal animal origin.
2. DOUBTFUL:
   - Gelatin whose source is not stated (e.g. "fish" or "halal").
   - Enzymes and rennet not stated as microbial or vegetable.
   - Any unspecified animal-derived ingredient.

DECISION LOGIC:
1. If stage 0 produced NON_FOOD or DOUBTFUL, keep it.
2. Search list 2. Any HARAM ingredient -> HARAM. Otherwise any DOUBTFUL ingredient -> DOUBTFUL.
3. If nothing from list 2 is found and the ingredients are plant-based or chemical -> HALAL.

For ingredientsDetected list every detected ingredient with its status (HALAL, HARAM, DOUBTFUL),
especially the ingredients that caused the final decision.

CONFIDENCE:
- Ingredient list fully clear and readable -> 90-100.
- Text readable with difficulty -> 60-80.
- NON_FOOD cases -> 100.

Output JSON only.
"""


def build_prompt(language: str = DEFAULT_LANGUAGE) -> str:
    """构建指令 Prompt"""
    return PROMPT_TEMPLATE.format(language=LANGUAGE_NAMES.get(language, LANGUAGE_NAMES[DEFAULT_LANGUAGE]))


@dataclass(frozen=True)
class GenerationParams:
    """确定性参数：同一张图片尽量得到同样的结果"""
    temperature: float = 0.0
    top_p: float = 0.1
    top_k: int = 1
    response_mime_type: str = "application/json"


@dataclass(frozen=True)
class AnalysisRequest:
    """分析请求（构建后不可变）"""
    image: CapturedImage
    schema: Dict[str, Any]
    prompt: str
    generation: GenerationParams = GenerationParams()


ImageInput = Union[CapturedImage, bytes, str]


def to_captured_image(image: ImageInput) -> CapturedImage:
    """把 CapturedImage / 原始字节 / data URL 统一为 CapturedImage"""
    if isinstance(image, CapturedImage):
        return image
    if isinstance(image, (bytes, bytearray)):
        return CapturedImage.from_bytes(bytes(image))
    if isinstance(image, str):
        return CapturedImage.from_data_url(image)
    raise TypeError(f"不支持的图片类型: {type(image).__name__}")


class InferenceRequestBuilder:
    """分析请求构建器"""

    def __init__(self,
                 scaler: ImageScaler = None,
                 pixel_filter: PixelFilter = None,
                 max_width: int = MAX_WIDTH,
                 max_height: int = MAX_HEIGHT,
                 language: str = DEFAULT_LANGUAGE,
                 log_dir=None):
        self.scaler = scaler or ImageScaler(log_dir=log_dir)
        self.pixel_filter = pixel_filter or PixelFilter(log_dir=log_dir)
        self.max_width = max_width
        self.max_height = max_height
        self.language = language
        self.logger = Logger(log_dir)

    def build(self, image: ImageInput, enhance: bool = False, downscale: bool = False) -> AnalysisRequest:
        """构建分析请求

        Args:
            image: 原始图片
            enhance: 是否增强（对比度 + 锐化）
            downscale: 是否缩小到最大尺寸以内

        Returns:
            AnalysisRequest
        """
        processed = to_captured_image(image)

        # 1. 缩放
        if downscale:
            try:
                processed = self.scaler.downscale(processed, self.max_width, self.max_height)
            except Exception as e:
                self.logger.log("request", "warning", f"图片缩放失败，使用原图: {e}")

        # 2. 增强
        if enhance:
            try:
                processed = self.pixel_filter.enhance(processed)
            except Exception as e:
                self.logger.log("request", "warning", f"图片增强失败，使用上一步结果: {e}")

        return AnalysisRequest(
            image=processed,
            schema=copy.deepcopy(RESPONSE_SCHEMA),
            prompt=build_prompt(self.language),
        )
