"""
Halal Scanner

拍摄食品配料表，判断是否清真：
- vision: 摄像头、拍照、图片预处理
- ai: 请求构建、推理网关、错误分类
- scanner: 单次扫描流程
"""
