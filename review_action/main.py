"""
Action 入口。

这里做三件事：
- 加载配置 + 读取事件（缺失必填输入直接失败，这是期望行为）
- 组装外部依赖（httpx.AsyncClient / GitHub / Gemini / 邮件）
- 跑一次 review，并把结果映射为进程退出码

退出约定：
- 任何未捕获异常：输出 `::error::<message>` 注解，退出码 1
- 正常结束：退出码 0（即使什么通知都没发）
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

import anyio
import httpx

from review_action.config import load_config_from_env
from review_action.github.events import load_event
from review_action.github.events import read_event_payload
from review_action.review.models import RepositoryRef
from review_action.review.orchestrator import RunOutcome
from review_action.review.orchestrator import build_review_orchestrator
from review_action.review.orchestrator import run_review

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 30.0


async def run_action(
    environ: Mapping[str, str],
    transport: httpx.AsyncBaseTransport | None = None,
) -> RunOutcome:
    """
    跑一次完整 action。

    - transport：测试时注入 `httpx.MockTransport`，生产为 None（真实网络）
    """
    config = load_config_from_env(environ)
    repo = RepositoryRef.parse(config.repository)
    event = load_event(event_name=config.event_name, payload=read_event_payload(config.event_path))
    if event is None:
        return RunOutcome(status="ignored")

    async with httpx.AsyncClient(timeout=httpx.Timeout(HTTP_TIMEOUT_SECONDS), transport=transport) as http_client:
        orchestrator = build_review_orchestrator(config=config, http_client=http_client)
        outcome = await run_review(orchestrator=orchestrator, event=event, repo=repo)

    logger.info(f"Run finished: {outcome.status}")
    return outcome


def format_error_annotation(message: str) -> str:
    """GitHub Actions workflow command：`%`、换行需要转义。"""
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    return f"::error::{escaped}"


def configure_logging(environ: Mapping[str, str]) -> None:
    level = "DEBUG" if environ.get("RUNNER_DEBUG") == "1" else environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> int:
    configure_logging(os.environ)
    try:
        anyio.run(run_action, os.environ)
    except Exception as exc:
        logger.error(f"Code review failed: {exc}")
        print(format_error_annotation(str(exc)), flush=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
