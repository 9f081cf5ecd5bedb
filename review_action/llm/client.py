"""
Gemini Client（直接调用 `generateContent` REST 接口）。

目标：
- **尽量薄**：只做协议适配与错误处理
- **失败显式**：HTTP 错误、非 JSON、嵌套字段缺失都抛 `ReviewApiError`，
  并在消息里写明缺的是哪一层（而不是一路 None 传下去）
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from review_action.errors import ReviewApiError

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 4096


def build_generate_content_body(prompt: str, max_output_tokens: int = MAX_OUTPUT_TOKENS) -> dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"maxOutputTokens": max_output_tokens},
    }


def _first(container: Any, key: str, path: str) -> Any:
    """取 `container[key][0]`；缺失/类型不对/为空都抛错，`path` 用于错误消息。"""
    if not isinstance(container, dict):
        raise ReviewApiError(f"Gemini response: expected object at {path}, got {type(container).__name__}")
    items = container.get(key)
    if not isinstance(items, list) or not items:
        raise ReviewApiError(f"Gemini response missing {path}.{key}[0]")
    return items[0]


def extract_candidate_text(data: Any) -> str:
    """
    逐层取 `candidates[0].content.parts[0].text`。

    每一层缺失都给出具体位置，便于从日志定位（例如被安全策略拦截时没有 content）。
    """
    candidate = _first(data, "candidates", "$")
    if not isinstance(candidate, dict) or not isinstance(candidate.get("content"), dict):
        finish_reason = candidate.get("finishReason") if isinstance(candidate, dict) else None
        raise ReviewApiError(f"Gemini response missing candidates[0].content (finishReason={finish_reason})")
    part = _first(candidate["content"], "parts", "candidates[0].content")
    if not isinstance(part, dict):
        raise ReviewApiError("Gemini response: candidates[0].content.parts[0] is not an object")
    text = part.get("text")
    if not isinstance(text, str):
        raise ReviewApiError("Gemini response missing candidates[0].content.parts[0].text")
    return text


class GeminiClient:
    """Gemini `generateContent` 的最小 client。"""

    def __init__(self, api_key: str, base_url: str, http_client: httpx.AsyncClient, model: str) -> None:
        """
        - api_key: Gemini API key（通过 `?key=` 传递，不写日志）
        - base_url: 例如 `https://generativelanguage.googleapis.com/v1`
        - http_client: 复用 httpx.AsyncClient
        - model: 模型名（例如 `gemini-2.0-flash`）
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    def _endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    async def generate_text(self, prompt: str, max_output_tokens: int = MAX_OUTPUT_TOKENS) -> str:
        """
        发送单轮 prompt 并返回纯文本。

        出错直接抛 `ReviewApiError`，由 requester 决定如何降级。
        """
        logger.info(f"Gemini request: model={self._model}, prompt={len(prompt)} chars")
        try:
            response = await self._http_client.post(
                self._endpoint(),
                params={"key": self._api_key},
                json=build_generate_content_body(prompt=prompt, max_output_tokens=max_output_tokens),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            # 异常消息里可能带完整 URL（含 key），只记录类型
            logger.error(f"Gemini HTTP error: {type(exc).__name__}")
            raise ReviewApiError(f"Gemini request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.error(f"Gemini API error {response.status_code}: {response.text}")
            raise ReviewApiError(f"Gemini API error {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ReviewApiError("Gemini returned a non-JSON response") from exc

        text = extract_candidate_text(data)
        logger.info(f"Gemini response: {len(text)} chars")
        return text
