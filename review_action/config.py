"""
Action 配置加载。

设计目标：
- **严格**：必填输入缺失就直接报错（避免“看起来跑了其实没配置好”）
- **类型安全**：使用 Pydantic 校验 URL/端口/枚举等，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试

GitHub Actions 会把 `with:` 里的输入以 `INPUT_<NAME>` 的形式注入环境变量，
NAME 为大写；这里同时接受 `INPUT_EMAIL-HOST` 与 `INPUT_EMAIL_HOST` 两种写法。
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl

from review_action.errors import ConfigurationMissing

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1"
DEFAULT_REVIEW_LABEL = "code-review"

DiffStrategy = Literal["full", "latest-per-file"]


class EmailConfig(BaseModel):
    """SMTP 投递配置；host/to 为空时邮件通道整体视为未配置（不是错误）。"""

    host: str = ""
    port: int = Field(default=587, gt=0, lt=65536)
    secure: bool = False
    user: str = ""
    password: str = Field(default="", repr=False)
    from_addr: str = ""
    to: str = ""
    bcc: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.host) and bool(self.to)


class ActionConfig(BaseModel):
    """单次运行所需的全部配置。"""

    github_token: str = Field(repr=False)
    gemini_api_key: str = Field(repr=False)
    model: str = DEFAULT_MODEL
    repository: str
    event_name: str
    event_path: str
    github_api_url: HttpUrl
    gemini_api_base_url: HttpUrl
    diff_strategy: DiffStrategy = "full"
    review_label: str = DEFAULT_REVIEW_LABEL
    create_push_issue: bool = False
    email: EmailConfig = Field(default_factory=EmailConfig)


def read_input(environ: Mapping[str, str], name: str) -> str:
    """按 GitHub Actions 约定读取 `INPUT_<NAME>`，未设置返回空串。"""
    upper = name.upper()
    for key in (f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}"):
        value = environ.get(key)
        if value is not None and value.strip():
            return value.strip()
    return ""


def _read_bool(environ: Mapping[str, str], name: str) -> bool:
    return read_input(environ, name).lower() == "true"


def load_email_config(environ: Mapping[str, str]) -> EmailConfig:
    """
    读取 email-* 输入。

    - email-port 缺省：secure 时 465，否则 587
    - email-port 非数字：抛 `ValueError`
    """
    secure = _read_bool(environ, "email-secure")
    raw_port = read_input(environ, "email-port")
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ValueError(f"Invalid email-port: {raw_port}") from exc
    else:
        port = 465 if secure else 587

    return EmailConfig(
        host=read_input(environ, "email-host"),
        port=port,
        secure=secure,
        user=read_input(environ, "email-user"),
        password=read_input(environ, "email-pass"),
        from_addr=read_input(environ, "email-from"),
        to=read_input(environ, "email-to"),
        bcc=read_input(environ, "email-bcc"),
    )


def load_config_from_env(environ: Mapping[str, str]) -> ActionConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`ActionConfig`
    - **失败**：必填项缺失抛 `ConfigurationMissing`（一次性列出全部缺失项）；
      其余校验失败（URL/枚举不合法）由 Pydantic 抛 `ValidationError`
    """
    github_token = read_input(environ, "github-token")
    gemini_api_key = read_input(environ, "gemini-api-key")

    missing: list[str] = []
    if not github_token:
        missing.append("github-token")
    if not gemini_api_key:
        missing.append("gemini-api-key")
    for key in ("GITHUB_REPOSITORY", "GITHUB_EVENT_NAME", "GITHUB_EVENT_PATH"):
        if not environ.get(key):
            missing.append(key)
    if missing:
        raise ConfigurationMissing(missing)

    review_label = DEFAULT_REVIEW_LABEL
    raw_label = environ.get("INPUT_REVIEW-LABEL", environ.get("INPUT_REVIEW_LABEL"))
    if raw_label is not None:
        # 显式传空串表示关闭打标签
        review_label = raw_label.strip()

    return ActionConfig(
        github_token=github_token,
        gemini_api_key=gemini_api_key,
        model=read_input(environ, "model") or DEFAULT_MODEL,
        repository=environ["GITHUB_REPOSITORY"],
        event_name=environ["GITHUB_EVENT_NAME"],
        event_path=environ["GITHUB_EVENT_PATH"],
        github_api_url=environ.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL,
        gemini_api_base_url=environ.get("GEMINI_API_BASE_URL") or DEFAULT_GEMINI_API_BASE_URL,
        diff_strategy=read_input(environ, "diff-strategy") or "full",
        review_label=review_label,
        create_push_issue=_read_bool(environ, "create-push-issue"),
        email=load_email_config(environ),
    )
