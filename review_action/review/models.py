"""
Review 领域模型（Pydantic）。

用途：
- 明确 pipeline 各阶段输入/输出的数据结构（event -> diff -> review -> dispatch）
- 全部是请求级对象：每次运行新建，运行结束即丢弃
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

NO_RESPONSE_SENTINEL = "Error or no response!"


class RepositoryRef(BaseModel):
    """`owner/name` 形式的仓库标识（来自 `GITHUB_REPOSITORY`）。"""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @classmethod
    def parse(cls, full_name: str) -> RepositoryRef:
        owner, sep, name = full_name.partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Invalid repository name: {full_name!r} (expected owner/name)")
        return cls(owner=owner, name=name)


class CommitRef(BaseModel):
    """push 事件里的一条 commit（只保留 id，变更文件需要再查）。"""

    model_config = ConfigDict(frozen=True)

    id: str


class PullRequestEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["pull_request"] = "pull_request"
    number: int
    author: str | None = None


class PushEvent(BaseModel):
    """
    push 事件。

    author：优先 pusher.name，其次 payload 里附带的 PR 作者；都没有则为 None。
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["push"] = "push"
    commits: tuple[CommitRef, ...] = ()
    author: str | None = None


Event = Annotated[Union[PullRequestEvent, PushEvent], Field(discriminator="kind")]


class FileChange(BaseModel):
    """单个文件的变更；二进制文件没有 patch。"""

    model_config = ConfigDict(frozen=True)

    path: str
    patch: str | None = None


class Commit(BaseModel):
    """查询 commit 详情后得到的变更文件列表（顺序与平台返回一致）。"""

    model_config = ConfigDict(frozen=True)

    id: str
    files: tuple[FileChange, ...] = ()


class DiffBlock(BaseModel):
    """DiffBundle 里的一段：某个 commit 下某个文件的 patch。"""

    model_config = ConfigDict(frozen=True)

    commit_id: str
    path: str
    patch: str

    def render(self) -> str:
        return f"Commit: {self.commit_id}\nFile: {self.path}\n{self.patch}\n"


class DiffBundle(BaseModel):
    """
    送去 review 的 diff 文本。

    - PR：`text` 是整份 unified diff，`blocks` 为空
    - push：`text` 由 `blocks` 按顺序拼接而来
    """

    text: str
    blocks: list[DiffBlock] = Field(default_factory=list)

    @classmethod
    def from_blocks(cls, blocks: list[DiffBlock]) -> DiffBundle:
        return cls(text="".join(b.render() for b in blocks), blocks=blocks)


class ReviewResult(BaseModel):
    """Gemini 的 review 文本；`is_empty` 为 True 时 `text` 是 sentinel。"""

    text: str
    is_empty: bool

    @classmethod
    def no_response(cls) -> ReviewResult:
        return cls(text=NO_RESPONSE_SENTINEL, is_empty=True)
