"""
Markdown -> 安全 HTML（邮件正文用）。

- Gemini 的输出当作不可信内容：先用 Python-Markdown 渲染，再用 nh3 白名单清洗
- `<script>`/事件属性/`javascript:` 链接都会被去掉
- 纯函数，每次调用独立，不持有全局 converter 实例
"""

from __future__ import annotations

from collections.abc import Sequence

import markdown
import nh3

DEFAULT_EXTENSIONS: tuple[str, ...] = ("fenced_code", "tables", "sane_lists")


def render_markdown(text: str, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> str:
    html = markdown.markdown(text, extensions=list(extensions), output_format="html")
    return nh3.clean(html).strip()
