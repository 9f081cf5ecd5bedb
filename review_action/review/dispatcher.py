"""
Dispatcher（把 review 结果送到通知渠道）。

规则：
- PR 事件：**总是**把原始 Markdown 发成 PR 评论（sentinel 也发，让作者知道 review 没出来）；
  配置了 review label 时再给 PR 打上 label
- push 事件：开启 `create-push-issue` 时新建一条带编号的 review issue
- 邮件：review 为空 / 含 "no response" / 渲染后的 HTML 过短都不发；
  正文是清洗后的 HTML，主题由事件类型 + 仓库名 + 操作者确定性生成

GitHub 调用失败仍然是致命的（抛 `UpstreamFetchError`）；邮件失败只记日志。
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel

from review_action.config import EmailConfig
from review_action.github.client import GitHubClient
from review_action.github.schemas import GitHubIssue
from review_action.notify.mailer import EmailDelivery
from review_action.notify.mailer import EmailTransport
from review_action.notify.mailer import send_email
from review_action.notify.mailer import smtp_transport
from review_action.notify.render import render_markdown
from review_action.review.models import Event
from review_action.review.models import PullRequestEvent
from review_action.review.models import RepositoryRef
from review_action.review.models import ReviewResult

logger = logging.getLogger(__name__)

NO_RESPONSE_PHRASE = "no response"
MIN_EMAIL_BODY_CHARS = 10
REVIEW_ISSUE_TITLE_RE = re.compile(r"Code Review Issue #(\d+)")
ISSUE_SCAN_PAGE_SIZE = 30


@dataclass(frozen=True)
class DispatchChannels:
    """Dispatcher 运行时依赖集合（GitHub 评论通道 + 邮件通道）。"""

    github_client: GitHubClient
    email_config: EmailConfig
    email_transport: EmailTransport = smtp_transport
    review_label: str = ""
    create_push_issue: bool = False


class DispatchOutcome(BaseModel):
    """一次 dispatch 实际做了什么（便于日志与测试断言）。"""

    subject: str
    commented: bool = False
    labeled: bool = False
    issue_number: int | None = None
    email: EmailDelivery | None = None


def build_subject(event: Event, repo: RepositoryRef) -> str:
    repo_name = repo.name.upper()
    if isinstance(event, PullRequestEvent):
        subject = f"Code Review: Pull Request #{event.number} in {repo_name}"
    else:
        subject = f"Code Review: Push Event in {repo_name}"
    if event.author:
        subject += f" By {event.author}"
    return subject


def is_notifiable(review: ReviewResult) -> bool:
    """review 文本是否值得发邮件（过滤空结果和 sentinel）。"""
    if review.is_empty or not review.text.strip():
        return False
    return NO_RESPONSE_PHRASE not in review.text.lower()


def next_review_issue_number(issues: list[GitHubIssue]) -> int:
    """
    最近一条 review issue 的编号 + 1；一条都没有时从 1 开始。

    `issues` 按创建时间倒序；PR（也带同一个 label）和标题不匹配的 issue 都跳过。
    """
    for issue in issues:
        if issue.is_pull_request:
            continue
        match = REVIEW_ISSUE_TITLE_RE.search(issue.title)
        if match is not None:
            return int(match.group(1)) + 1
    return 1


async def create_review_issue(
    github_client: GitHubClient,
    repo: RepositoryRef,
    body: str,
    label: str,
) -> GitHubIssue:
    latest = await github_client.list_issues(repo=repo, label=label, per_page=ISSUE_SCAN_PAGE_SIZE)
    number = next_review_issue_number(latest)
    issue = await github_client.create_issue(
        repo=repo,
        title=f"Code Review Issue #{number}",
        body=body,
        labels=[label] if label else [],
    )
    logger.info(f"Created review issue #{issue.number}: {issue.title}")
    return issue


async def dispatch(
    event: Event,
    review: ReviewResult,
    repo: RepositoryRef,
    channels: DispatchChannels,
) -> DispatchOutcome:
    outcome = DispatchOutcome(subject=build_subject(event=event, repo=repo))

    if isinstance(event, PullRequestEvent):
        await channels.github_client.create_issue_comment(repo=repo, issue_number=event.number, body=review.text)
        outcome.commented = True
        logger.info(f"Posted review comment on #{event.number}")
        if channels.review_label:
            await channels.github_client.add_labels(
                repo=repo, issue_number=event.number, labels=[channels.review_label]
            )
            outcome.labeled = True
    elif channels.create_push_issue and is_notifiable(review):
        issue = await create_review_issue(
            github_client=channels.github_client,
            repo=repo,
            body=review.text,
            label=channels.review_label,
        )
        outcome.issue_number = issue.number

    if not is_notifiable(review):
        logger.info("Review has no usable content, skipping email.")
        return outcome

    html_body = render_markdown(review.text)
    if len(html_body) <= MIN_EMAIL_BODY_CHARS:
        logger.info(f"Rendered review too short ({len(html_body)} chars), skipping email.")
        return outcome

    outcome.email = await send_email(
        subject=outcome.subject,
        html_body=html_body,
        config=channels.email_config,
        transport=channels.email_transport,
    )
    return outcome
