"""
Review Requester。

把 diff 交给 Gemini，拿回 review 文本。

失败策略（与 GitHub 调用相反）：
- Gemini 出错**不终止**本次运行，转成 sentinel 结果继续往下走
- Dispatcher 看到 sentinel 不发邮件；PR 评论照发（让作者知道 review 没出来）
"""

from __future__ import annotations

import logging

from review_action.errors import ReviewApiError
from review_action.llm.client import MAX_OUTPUT_TOKENS
from review_action.llm.client import GeminiClient
from review_action.review.models import DiffBundle
from review_action.review.models import ReviewResult
from review_action.review.prompt import build_review_prompt

logger = logging.getLogger(__name__)


async def request_review(diff: DiffBundle, llm_client: GeminiClient) -> ReviewResult:
    prompt = build_review_prompt(diff=diff.text)
    try:
        text = await llm_client.generate_text(prompt=prompt, max_output_tokens=MAX_OUTPUT_TOKENS)
    except ReviewApiError as exc:
        logger.error(f"Review request failed, continuing without review: {exc}")
        return ReviewResult.no_response()

    if not text.strip():
        logger.warning("Gemini returned empty review text")
        return ReviewResult.no_response()
    return ReviewResult(text=text, is_empty=False)
