"""
GitHub API 客户端（外部系统连接器）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验，不做业务决策
- 出错统一抛 `UpstreamFetchError`（不要吞），由 `main()` 标记本次运行失败
- 不做重试：一次运行只处理一个事件，失败就让 CI 重跑
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from review_action.errors import UpstreamFetchError
from review_action.github.schemas import GitHubComment
from review_action.github.schemas import GitHubCommitDetail
from review_action.github.schemas import GitHubIssue
from review_action.review.models import RepositoryRef

logger = logging.getLogger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.diff"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamFetchError(f"GitHub returned a non-JSON response: {response.text[:200]}") from exc


class GitHubClient:
    """最小 GitHub API client（PR diff / commit 详情 / issue comment / label / issue）。"""

    def __init__(self, api_base_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _repo_url(self, repo: RepositoryRef) -> str:
        return f"{self._api_base_url}/repos/{repo.owner}/{repo.name}"

    @staticmethod
    def _parse(schema: type[SchemaT], data: Any, what: str) -> SchemaT:
        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            raise UpstreamFetchError(f"Unexpected GitHub response shape for {what}: {exc}") from exc

    async def _request(
        self,
        method: str,
        url: str,
        accept: str = "application/vnd.github+json",
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._http_client.request(method, url, headers=self._headers(accept=accept), **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"GitHub request failed: {method} {url}: {exc}")
            raise UpstreamFetchError(f"GitHub request failed: {exc}") from exc
        if response.status_code >= 400:
            raise UpstreamFetchError(
                f"GitHub API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    async def get_pull_request_diff(self, repo: RepositoryRef, pull_number: int) -> str:
        """
        拉取整份 PR diff（unified diff 纯文本）。

        GET /repos/{owner}/{repo}/pulls/{pull_number}，Accept 为 diff 媒体类型。
        """
        logger.info(f"Fetching diff for {repo.owner}/{repo.name}#{pull_number}")
        response = await self._request("GET", f"{self._repo_url(repo)}/pulls/{pull_number}", accept=DIFF_MEDIA_TYPE)
        return response.text

    async def get_commit(self, repo: RepositoryRef, ref: str) -> GitHubCommitDetail:
        """拉取单个 commit 的详情（含每个文件的 patch）。"""
        logger.info(f"Fetching commit {ref} in {repo.owner}/{repo.name}")
        response = await self._request("GET", f"{self._repo_url(repo)}/commits/{ref}")
        return self._parse(GitHubCommitDetail, _json(response), what=f"commit {ref}")

    async def create_issue_comment(self, repo: RepositoryRef, issue_number: int, body: str) -> GitHubComment:
        """
        在 PR/issue 下发布一条评论。

        说明：PR 在 GitHub 里也是 issue，所以走 /issues/{n}/comments。
        """
        url = f"{self._repo_url(repo)}/issues/{issue_number}/comments"
        response = await self._request("POST", url, json={"body": body})
        return self._parse(GitHubComment, _json(response), what="issue comment")

    async def add_labels(self, repo: RepositoryRef, issue_number: int, labels: list[str]) -> None:
        """给 PR/issue 追加 label（label 不存在时 GitHub 会自动创建）。"""
        url = f"{self._repo_url(repo)}/issues/{issue_number}/labels"
        await self._request("POST", url, json={"labels": labels})

    async def list_issues(self, repo: RepositoryRef, label: str = "", per_page: int = 30) -> list[GitHubIssue]:
        """
        按 label 列出 issue（open + closed，按创建时间倒序，只取第一页）。

        注意：结果里会混有 PR（`pull_request` 字段非空），由调用方过滤。
        """
        params: dict[str, str | int] = {"state": "all", "per_page": per_page, "direction": "desc"}
        if label:
            params["labels"] = label
        response = await self._request("GET", f"{self._repo_url(repo)}/issues", params=params)
        data = _json(response)
        if not isinstance(data, list):
            raise UpstreamFetchError(f"Unexpected GitHub response shape for issues: {data}")
        return [self._parse(GitHubIssue, x, what="issue") for x in data]

    async def create_issue(self, repo: RepositoryRef, title: str, body: str, labels: list[str]) -> GitHubIssue:
        response = await self._request(
            "POST",
            f"{self._repo_url(repo)}/issues",
            json={"title": title, "body": body, "labels": labels},
        )
        return self._parse(GitHubIssue, _json(response), what="created issue")
