"""
面向用户的提示语（多语言）

键与 DeviceErrorKind / ErrorKind 的值一一对应。
默认语言为阿拉伯语，缺失的语言回退到阿拉伯语。
"""
DEFAULT_LANGUAGE = "ar"

MESSAGES = {
    "ar": {
        # 摄像头
        "unsupported_platform": "عذراً، جهازك لا يدعم تشغيل الكاميرا.",
        "permission_denied": "تم رفض إذن الكاميرا. يرجى تفعيل إذن الكاميرا من الإعدادات ثم المحاولة مجدداً.",
        "camera_not_found": "لم يتم العثور على كاميرا في هذا الجهاز.",
        "camera_busy": "الكاميرا مشغولة بتطبيق آخر. يرجى إغلاق التطبيقات الأخرى والمحاولة مجدداً.",
        "camera_unknown": "حدث خطأ غير متوقع أثناء تشغيل الكاميرا. يرجى التأكد من الصلاحيات.",
        # 分析
        "missing_credential": "مفتاح API غير موجود. يرجى التأكد من إعدادات المشروع (ملف .env) أو إعدادات التطبيق.",
        "network": "لا يوجد اتصال بالإنترنت. يرجى التحقق من الشبكة والمحاولة مجدداً.",
        "rate_limited": "تم تجاوز الحد المسموح من الطلبات. يرجى الانتظار قليلاً ثم المحاولة.",
        "overloaded": "خوادم الذكاء الاصطناعي مشغولة حالياً. يرجى المحاولة بعد لحظات.",
        "payload_too_large": "حجم الصورة كبير جداً. سيتم تقليل الدقة تلقائياً في المحاولة القادمة.",
        "auth": "حدث خطأ في إعدادات الاتصال (API Key) أو الصلاحيات.",
        "safety_blocked": "تم حظر المحتوى لانتهاك معايير السلامة. يرجى استخدام صورة مختلفة.",
        "malformed_response": "حدث خطأ في قراءة بيانات النتيجة. يرجى المحاولة مرة أخرى.",
        "unknown": "حدث خطأ غير متوقع أثناء تحليل الصورة. حاول مرة أخرى.",
        "invalid_image": "تعذر قراءة الصورة. يرجى المحاولة بصورة أخرى.",
    },
    "en": {
        "unsupported_platform": "Sorry, this device does not support the camera.",
        "permission_denied": "Camera permission was denied. Enable camera access in settings and try again.",
        "camera_not_found": "No camera was found on this device.",
        "camera_busy": "The camera is in use by another application. Close other apps and try again.",
        "camera_unknown": "An unexpected error occurred while starting the camera. Check the permissions.",
        "missing_credential": "API key is missing. Check the project configuration (.env file) or app settings.",
        "network": "No internet connection. Check your network and try again.",
        "rate_limited": "Request limit exceeded. Please wait a moment and try again.",
        "overloaded": "The AI servers are busy right now. Please try again shortly.",
        "payload_too_large": "The image is too large. Resolution will be reduced automatically on the next attempt.",
        "auth": "Connection settings (API key) or permissions error.",
        "safety_blocked": "The content was blocked by safety policies. Please use a different image.",
        "malformed_response": "Could not read the result data. Please try again.",
        "unknown": "An unexpected error occurred while analyzing the image. Try again.",
        "invalid_image": "The image could not be read. Please try another image.",
    },
}

LANGUAGE_NAMES = {
    "ar": "Arabic",
    "en": "English",
}


def get_message(key: str, language: str = DEFAULT_LANGUAGE) -> str:
    """获取提示语"""
    table = MESSAGES.get(language, MESSAGES[DEFAULT_LANGUAGE])
    return table.get(key, MESSAGES[DEFAULT_LANGUAGE].get(key, MESSAGES[DEFAULT_LANGUAGE]["unknown"]))
