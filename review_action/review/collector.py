"""
Diff Collector（非 AI）。

职责：把一个事件变成一份 `DiffBundle`。

- PR：一次请求拿整份 PR diff
- push：逐个 commit 查详情，按 commit 顺序、再按平台返回的文件顺序拼接
- push 零 commit：返回 None（没有东西可 review，下游什么都不做）

两种 push 策略（输出不同，由配置 `diff-strategy` 二选一）：
- `full`：每个 commit 的每个文件都输出一段
- `latest-per-file`：同一文件只输出最后一次触碰它的 commit 的 patch

注意：commit 请求是**串行**的（总耗时随 commit 数线性增长，但不会瞬间打满限流）；
任何一次请求失败都会抛 `UpstreamFetchError` 终止整个流程，不做部分结果。
"""

from __future__ import annotations

import logging

from review_action.config import DiffStrategy
from review_action.github.client import GitHubClient
from review_action.github.schemas import GitHubCommitDetail
from review_action.review.models import Commit
from review_action.review.models import CommitRef
from review_action.review.models import DiffBlock
from review_action.review.models import DiffBundle
from review_action.review.models import Event
from review_action.review.models import FileChange
from review_action.review.models import PullRequestEvent
from review_action.review.models import RepositoryRef

logger = logging.getLogger(__name__)


def _to_commit(commit_id: str, detail: GitHubCommitDetail) -> Commit:
    return Commit(
        id=commit_id,
        files=tuple(FileChange(path=f.filename, patch=f.patch) for f in detail.files),
    )


async def fetch_commit(github_client: GitHubClient, repo: RepositoryRef, commit_id: str) -> Commit:
    detail = await github_client.get_commit(repo=repo, ref=commit_id)
    return _to_commit(commit_id=commit_id, detail=detail)


def _block(commit_id: str, file_change: FileChange) -> DiffBlock:
    # 二进制文件没有 patch：保留文件头，patch 行为空
    return DiffBlock(commit_id=commit_id, path=file_change.path, patch=file_change.patch or "")


async def collect_full_push_diff(
    github_client: GitHubClient,
    repo: RepositoryRef,
    commits: tuple[CommitRef, ...],
) -> list[DiffBlock]:
    blocks: list[DiffBlock] = []
    for ref in commits:
        commit = await fetch_commit(github_client=github_client, repo=repo, commit_id=ref.id)
        blocks.extend(_block(commit_id=commit.id, file_change=f) for f in commit.files)
    return blocks


async def collect_latest_per_file_diff(
    github_client: GitHubClient,
    repo: RepositoryRef,
    commits: tuple[CommitRef, ...],
) -> list[DiffBlock]:
    """
    每个文件只保留最后一次触碰它的 commit 的 patch。

    两遍：
    - pass 1：path -> 最后一个触碰它的 commit id（dict 保留首次出现的 path 顺序）
    - pass 2：对映射里出现的 commit 去重后再查一次，只输出映射到它的文件
    """
    latest_commit_by_path: dict[str, str] = {}
    for ref in commits:
        commit = await fetch_commit(github_client=github_client, repo=repo, commit_id=ref.id)
        for f in commit.files:
            latest_commit_by_path[f.path] = commit.id

    fetched: dict[str, Commit] = {}
    blocks: list[DiffBlock] = []
    for path, commit_id in latest_commit_by_path.items():
        if commit_id not in fetched:
            fetched[commit_id] = await fetch_commit(github_client=github_client, repo=repo, commit_id=commit_id)
        for f in fetched[commit_id].files:
            if f.path == path:
                blocks.append(_block(commit_id=commit_id, file_change=f))
    return blocks


async def collect_diff(
    event: Event,
    github_client: GitHubClient,
    repo: RepositoryRef,
    strategy: DiffStrategy = "full",
) -> DiffBundle | None:
    """
    收集事件对应的 diff。

    - 返回 None：push 事件没有 commit（"nothing to review"）
    - 失败：抛 `UpstreamFetchError`
    """
    if isinstance(event, PullRequestEvent):
        text = await github_client.get_pull_request_diff(repo=repo, pull_number=event.number)
        return DiffBundle(text=text)

    if not event.commits:
        logger.info("No commits found in push event.")
        return None

    if strategy == "latest-per-file":
        blocks = await collect_latest_per_file_diff(github_client=github_client, repo=repo, commits=event.commits)
    else:
        blocks = await collect_full_push_diff(github_client=github_client, repo=repo, commits=event.commits)

    bundle = DiffBundle.from_blocks(blocks)
    logger.info(f"Collected {len(blocks)} file patch(es) from {len(event.commits)} commit(s), strategy={strategy}")
    return bundle
