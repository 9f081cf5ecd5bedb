"""
Review Orchestrator（核心流程编排）。

一次运行 = 一个事件，严格串行：

event -> collect diff -> request review -> dispatch (PR comment / issue / email)

- diff 收集完成后才调用 Gemini；Gemini 返回后才 dispatch
- push 没有 commit 时直接结束：不调用 Gemini，也不发任何通知
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import httpx
from pydantic import BaseModel

from review_action.config import ActionConfig
from review_action.config import DiffStrategy
from review_action.github.client import GitHubClient
from review_action.llm.client import GeminiClient
from review_action.review.collector import collect_diff
from review_action.review.dispatcher import DispatchChannels
from review_action.review.dispatcher import DispatchOutcome
from review_action.review.dispatcher import dispatch
from review_action.review.models import Event
from review_action.review.models import RepositoryRef
from review_action.review.models import ReviewResult
from review_action.review.requester import request_review


@dataclass(frozen=True)
class ReviewOrchestrator:
    """Orchestrator 运行时依赖集合。"""

    github_client: GitHubClient
    llm_client: GeminiClient
    channels: DispatchChannels
    diff_strategy: DiffStrategy = "full"


class RunOutcome(BaseModel):
    status: Literal["ignored", "nothing_to_review", "dispatched"]
    review: ReviewResult | None = None
    dispatch: DispatchOutcome | None = None


def build_review_orchestrator(config: ActionConfig, http_client: httpx.AsyncClient) -> ReviewOrchestrator:
    """按配置装配 GitHub / Gemini client 与通知渠道（共用一个 httpx.AsyncClient）。"""
    github_client = GitHubClient(
        api_base_url=str(config.github_api_url),
        token=config.github_token,
        http_client=http_client,
    )
    llm_client = GeminiClient(
        api_key=config.gemini_api_key,
        base_url=str(config.gemini_api_base_url),
        http_client=http_client,
        model=config.model,
    )
    channels = DispatchChannels(
        github_client=github_client,
        email_config=config.email,
        review_label=config.review_label,
        create_push_issue=config.create_push_issue,
    )
    return ReviewOrchestrator(
        github_client=github_client,
        llm_client=llm_client,
        channels=channels,
        diff_strategy=config.diff_strategy,
    )


async def run_review(orchestrator: ReviewOrchestrator, event: Event, repo: RepositoryRef) -> RunOutcome:
    diff = await collect_diff(
        event=event,
        github_client=orchestrator.github_client,
        repo=repo,
        strategy=orchestrator.diff_strategy,
    )
    if diff is None:
        return RunOutcome(status="nothing_to_review")

    review = await request_review(diff=diff, llm_client=orchestrator.llm_client)
    outcome = await dispatch(event=event, review=review, repo=repo, channels=orchestrator.channels)
    return RunOutcome(status="dispatched", review=review, dispatch=outcome)
