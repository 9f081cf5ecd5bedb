"""
本地 Mock Gemini `generateContent` server。

用途：
- 在没有真实 Gemini API key 的情况下，本地跑通闭环（diff -> review -> dispatch）

启动：
  python -m review_action.dev.mock_gemini_server
然后设置 `GEMINI_API_BASE_URL=http://127.0.0.1:9002/v1`
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi import HTTPException
from pydantic import BaseModel, Field


class Part(BaseModel):
    text: str = ""


class Content(BaseModel):
    role: str = "user"
    parts: list[Part] = Field(default_factory=list)


class GenerationConfig(BaseModel):
    maxOutputTokens: int | None = None


class GenerateContentRequest(BaseModel):
    contents: list[Content] = Field(default_factory=list)
    generationConfig: GenerationConfig | None = None


def _extract_file_paths(prompt: str) -> list[str]:
    """
    从 push diff 里提取文件 path（按首次出现去重）。

    形如：
      Commit: abc123
      File: src/app.py
    """
    paths: list[str] = []
    for line in prompt.splitlines():
        if line.startswith("File: "):
            path = line.removeprefix("File: ").strip()
            if path and path not in paths:
                paths.append(path)
    return paths


def build_mock_review(prompt: str) -> str:
    paths = _extract_file_paths(prompt=prompt)
    if not paths:
        return "[MOCK] Reviewed the pull request diff: consider adding tests for the changed code paths."
    return "\n".join(f"- **{p}**: [MOCK] consider stricter input validation and a unit test." for p in paths)


app = FastAPI(title="Mock Gemini generateContent", version="0.1.0")


@app.post("/v1/models/{model}:generateContent")
async def generate_content(model: str, req: GenerateContentRequest, key: str = "") -> dict[str, object]:
    if not key:
        raise HTTPException(status_code=403, detail="API key not valid")
    prompt = "\n".join(p.text for c in req.contents if c.role == "user" for p in c.parts)
    text = build_mock_review(prompt=prompt)
    return {
        "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}],
        "modelVersion": model,
    }


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9002)


if __name__ == "__main__":
    main()
