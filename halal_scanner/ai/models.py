"""
分析结果数据模型

字段名与返回 JSON 的约定一致（ingredientsDetected 为驼峰）。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class HalalStatus(Enum):
    """判定结果"""
    HALAL = "HALAL"          # 可食用
    HARAM = "HARAM"          # 禁止
    DOUBTFUL = "DOUBTFUL"    # 存疑
    NON_FOOD = "NON_FOOD"    # 非食品 / 无法判定


# 单个配料只能是前三种
INGREDIENT_STATUSES = (HalalStatus.HALAL, HalalStatus.HARAM, HalalStatus.DOUBTFUL)


class ResultDecodeError(ValueError):
    """返回内容不符合结果格式"""


@dataclass(frozen=True)
class IngredientFinding:
    """单个配料的判定"""
    name: str
    status: HalalStatus

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: Any) -> 'IngredientFinding':
        if not isinstance(data, dict):
            raise ResultDecodeError(f"配料项必须是对象: {data!r}")
        name = data.get("name")
        if not isinstance(name, str):
            raise ResultDecodeError(f"配料名称缺失: {data!r}")
        status = _parse_status(data.get("status"), INGREDIENT_STATUSES)
        return cls(name=name, status=status)


@dataclass(frozen=True)
class AnalysisResult:
    """分析结果

    error_kind 只在失败时设置，不属于返回 JSON 的约定。
    """
    status: HalalStatus
    reason: str
    ingredients_detected: Tuple[IngredientFinding, ...] = ()
    confidence: int = 0
    error_kind: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error_kind is not None

    @classmethod
    def failure(cls, message: str, error_kind: str) -> 'AnalysisResult':
        """失败结果：NON_FOOD，置信度 0，无配料"""
        return cls(status=HalalStatus.NON_FOOD, reason=message,
                   ingredients_detected=(), confidence=0, error_kind=error_kind)

    @classmethod
    def from_dict(cls, data: Any) -> 'AnalysisResult':
        """按固定格式解析

        Raises:
            ResultDecodeError: 字段缺失或类型不符
        """
        if not isinstance(data, dict):
            raise ResultDecodeError("结果必须是 JSON 对象")

        missing = [key for key in ("status", "reason", "ingredientsDetected", "confidence")
                   if key not in data]
        if missing:
            raise ResultDecodeError(f"缺少字段: {', '.join(missing)}")

        status = _parse_status(data["status"], tuple(HalalStatus))

        reason = data["reason"]
        if not isinstance(reason, str):
            raise ResultDecodeError("reason 必须是字符串")

        items = data["ingredientsDetected"]
        if not isinstance(items, list):
            raise ResultDecodeError("ingredientsDetected 必须是数组")
        ingredients = tuple(IngredientFinding.from_dict(item) for item in items)

        confidence = data["confidence"]
        # bool 是 int 的子类，需要排除
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise ResultDecodeError("confidence 必须是整数")
        if isinstance(confidence, float) and not confidence.is_integer():
            raise ResultDecodeError("confidence 必须是整数")
        confidence = max(0, min(100, int(confidence)))

        return cls(status=status, reason=reason,
                   ingredients_detected=ingredients, confidence=confidence)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.status.value,
            "reason": self.reason,
            "ingredientsDetected": [item.to_dict() for item in self.ingredients_detected],
            "confidence": self.confidence,
        }
        if self.error_kind:
            result["errorKind"] = self.error_kind
        return result


def _parse_status(value: Any, allowed) -> HalalStatus:
    try:
        status = HalalStatus(value)
    except ValueError:
        raise ResultDecodeError(f"未知状态: {value!r}") from None
    if status not in allowed:
        raise ResultDecodeError(f"此处不允许的状态: {value!r}")
    return status
