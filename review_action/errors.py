"""
错误类型（整条 pipeline 共用）。

分两类：
- **致命**：`UpstreamFetchError` / `ConfigurationMissing`，直接冒泡到 `main()`，本次运行标记失败
- **可恢复**：`ReviewApiError` / `EmailTransportError`，在出错点就地捕获并转换为 sentinel/结果对象
"""

from __future__ import annotations


class UpstreamFetchError(RuntimeError):
    """GitHub API 不可达或返回非 2xx。"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReviewApiError(RuntimeError):
    """Gemini 调用失败，或响应结构不符合预期。"""

    pass


class EmailTransportError(RuntimeError):
    """SMTP 连接/鉴权/投递失败。"""

    pass


class ConfigurationMissing(ValueError):
    """必填输入缺失（启动即失败）。"""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required inputs: {', '.join(missing)}")
        self.missing = missing
