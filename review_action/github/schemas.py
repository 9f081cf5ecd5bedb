"""
GitHub event payload / API response schemas（Pydantic）。

说明：
- 字段只覆盖当前流程需要的子集（PR/push 事件 + commit 详情 + issue）
- 其余字段一律忽略（Pydantic 默认 extra=ignore）
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class GitHubUser(BaseModel):
    login: str


class GitHubPusher(BaseModel):
    name: str | None = None


class GitHubPullRequest(BaseModel):
    number: int
    user: GitHubUser | None = None


class GitHubPullRequestEventPayload(BaseModel):
    """`pull_request` 事件（`GITHUB_EVENT_PATH` 指向的 JSON）。"""

    pull_request: GitHubPullRequest


class GitHubPushCommit(BaseModel):
    id: str


class GitHubPushEventPayload(BaseModel):
    """
    `push` 事件。

    commits 可能缺失（例如删除分支）；pull_request 正常不会出现，只作为作者名兜底。
    """

    commits: list[GitHubPushCommit] | None = None
    pusher: GitHubPusher | None = None
    pull_request: GitHubPullRequest | None = None


class GitHubCommitFile(BaseModel):
    """commit 详情里的文件 item（GET /repos/{owner}/{repo}/commits/{ref}）。"""

    filename: str
    patch: str | None = None


class GitHubCommitDetail(BaseModel):
    sha: str
    files: list[GitHubCommitFile] = Field(default_factory=list)


class GitHubIssue(BaseModel):
    """issue 列表 item；GitHub 的 issues 接口也会返回 PR（带 pull_request 字段）。"""

    number: int
    title: str
    pull_request: dict[str, object] | None = None

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None


class GitHubComment(BaseModel):
    id: int
    html_url: str | None = None
