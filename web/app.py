"""
Web Application - Halal Scanner

使用 Flask 提供 RESTful API（不含页面渲染）
"""
import sys
from pathlib import Path
from typing import Optional

# 添加父目录到 sys.path，以便导入 halal_scanner
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from flask import Flask, jsonify, request
from flask_cors import CORS

from halal_scanner.common import Config, env_flag
from halal_scanner.scanner import ScanService, create_scan_service


def _as_bool(value, default: bool) -> bool:
    """把表单 / JSON 中的开关值转换为布尔"""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def create_app(scan_service: Optional[ScanService] = None) -> Flask:
    """创建 Flask 应用

    Args:
        scan_service: 扫描服务（可选，不传时首次请求按 .env 配置创建）
    """
    app = Flask(__name__)
    CORS(app)  # 移动端 WebView 跨域调用
    services = {"scan": scan_service}

    def get_scan_service() -> ScanService:
        if services["scan"] is None:
            services["scan"] = create_scan_service(Config(log_dir=PROJECT_ROOT / "logs"))
        return services["scan"]

    # ==================== API 路由 ====================

    @app.route('/api/status', methods=['GET'])
    def get_status():
        """获取服务状态"""
        service = get_scan_service()
        return jsonify({
            "success": True,
            "ai": service.ai_service.get_status(),
            "enhance_image": service.enhance_image,
            "downscale_image": service.downscale_image
        })

    @app.route('/api/analyze', methods=['POST'])
    def analyze():
        """分析配料表图片

        支持两种方式：
        - multipart/form-data: image 文件 + enhance / downscale 字段
        - application/json: {"image": "<data URL 或 base64>", "enhance": bool, "downscale": bool}
        """
        service = get_scan_service()

        if request.files.get("image") is not None:
            image = request.files["image"].read()
            options = request.form
        else:
            payload = request.get_json(silent=True) or {}
            image = payload.get("image")
            options = payload

        if not image:
            return jsonify({
                "success": False,
                "message": "缺少图片"
            }), 400

        outcome = service.scan_image(
            image,
            enhance=_as_bool(options.get("enhance"), service.enhance_image),
            downscale=_as_bool(options.get("downscale"), service.downscale_image)
        )

        return jsonify({
            "success": outcome.ok,
            **outcome.result.to_dict()
        })

    # ==================== 错误处理 ====================

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            "success": False,
            "message": "接口不存在"
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({
            "success": False,
            "message": "服务器内部错误"
        }), 500

    return app


app = create_app()


# ==================== 启动命令 ====================

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=env_flag("FLASK_DEBUG"))
