"""
GitHub event -> Review domain adapter。

职责：
- 读取 runner 写好的事件 JSON（`GITHUB_EVENT_PATH`）
- 按事件名解析为平台无关的 `PullRequestEvent` / `PushEvent`
- 不支持的事件返回 None（本次运行直接正常退出）
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from review_action.github.schemas import GitHubPullRequestEventPayload
from review_action.github.schemas import GitHubPushEventPayload
from review_action.review.models import CommitRef
from review_action.review.models import Event
from review_action.review.models import PullRequestEvent
from review_action.review.models import PushEvent

logger = logging.getLogger(__name__)


def read_event_payload(event_path: str) -> dict[str, Any]:
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid event payload JSON at {event_path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Event payload at {event_path} is not a JSON object")
    return payload


def load_event(event_name: str, payload: dict[str, Any]) -> Event | None:
    if event_name == "pull_request":
        pr_payload = GitHubPullRequestEventPayload.model_validate(payload)
        pr = pr_payload.pull_request
        return PullRequestEvent(number=pr.number, author=pr.user.login if pr.user else None)

    if event_name == "push":
        push_payload = GitHubPushEventPayload.model_validate(payload)
        author = push_payload.pusher.name if push_payload.pusher else None
        if not author and push_payload.pull_request is not None and push_payload.pull_request.user is not None:
            author = push_payload.pull_request.user.login
        commits = tuple(CommitRef(id=c.id) for c in push_payload.commits or [])
        return PushEvent(commits=commits, author=author or None)

    logger.info(f"Ignoring unsupported event: {event_name}")
    return None
