from __future__ import annotations

import json
from email.message import EmailMessage

import httpx
import pytest

from review_action.config import EmailConfig
from review_action.errors import UpstreamFetchError
from review_action.github.client import GitHubClient
from review_action.github.schemas import GitHubIssue
from review_action.review.dispatcher import DispatchChannels
from review_action.review.dispatcher import build_subject
from review_action.review.dispatcher import dispatch
from review_action.review.dispatcher import next_review_issue_number
from review_action.review.models import CommitRef
from review_action.review.models import PullRequestEvent
from review_action.review.models import PushEvent
from review_action.review.models import RepositoryRef
from review_action.review.models import ReviewResult

REPO = RepositoryRef(owner="acme", name="demo")
EMAIL = EmailConfig(host="smtp.example.com", to="team@example.com", from_addr="bot@example.com")


class FakeGitHub:
    """记录所有请求；issue 列表返回 `latest_issues`。"""

    def __init__(self, latest_issues: list[dict[str, object]] | None = None) -> None:
        self.requests: list[tuple[str, str, object]] = []
        self.latest_issues = latest_issues or []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        path = request.url.path
        if request.method == "POST" and path.endswith("/comments"):
            return httpx.Response(201, json={"id": 1, "html_url": "https://github.com/acme/demo/pull/42#c1"})
        if request.method == "POST" and path.endswith("/labels"):
            return httpx.Response(200, json=[{"name": "code-review"}])
        if request.method == "GET" and path == "/repos/acme/demo/issues":
            return httpx.Response(200, json=self.latest_issues)
        if request.method == "POST" and path == "/repos/acme/demo/issues":
            return httpx.Response(201, json={"number": 99, "title": body["title"]})
        return httpx.Response(404, json={"message": "Not Found"})

    def client(self) -> GitHubClient:
        return GitHubClient(
            api_base_url="https://api.github.com",
            token="t",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
        )


class RecordingTransport:
    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    def __call__(self, config: EmailConfig, message: EmailMessage) -> None:
        self.sent.append(message)


def _channels(
    github: FakeGitHub,
    transport: RecordingTransport,
    email_config: EmailConfig = EMAIL,
    review_label: str = "",
    create_push_issue: bool = False,
) -> DispatchChannels:
    return DispatchChannels(
        github_client=github.client(),
        email_config=email_config,
        email_transport=transport,
        review_label=review_label,
        create_push_issue=create_push_issue,
    )


def test_build_subject_for_pull_request() -> None:
    event = PullRequestEvent(number=42, author="alice")
    assert build_subject(event=event, repo=RepositoryRef(owner="o", name="demo")) == (
        "Code Review: Pull Request #42 in DEMO By alice"
    )


def test_build_subject_for_push_without_author() -> None:
    event = PushEvent(commits=(CommitRef(id="c1"),), author=None)
    assert build_subject(event=event, repo=REPO) == "Code Review: Push Event in DEMO"


def test_next_review_issue_number() -> None:
    assert next_review_issue_number([]) == 1
    assert next_review_issue_number([GitHubIssue(number=5, title="Code Review Issue #7")]) == 8
    assert next_review_issue_number([GitHubIssue(number=5, title="Something else")]) == 1


def test_next_review_issue_number_skips_pull_requests_and_other_titles() -> None:
    issues = [
        GitHubIssue(number=9, title="Code Review Issue #30", pull_request={"url": "https://api.github.com/x"}),
        GitHubIssue(number=8, title="Flaky CI"),
        GitHubIssue(number=6, title="Code Review Issue #3"),
        GitHubIssue(number=2, title="Code Review Issue #1"),
    ]
    assert next_review_issue_number(issues) == 4


@pytest.mark.anyio
async def test_pull_request_review_is_commented_and_emailed() -> None:
    github = FakeGitHub()
    transport = RecordingTransport()
    review = ReviewResult(text="File a.js:10 — avoid global var", is_empty=False)

    outcome = await dispatch(
        event=PullRequestEvent(number=42, author="alice"),
        review=review,
        repo=REPO,
        channels=_channels(github, transport),
    )

    assert outcome.subject == "Code Review: Pull Request #42 in DEMO By alice"
    assert outcome.commented is True
    assert github.requests[0] == (
        "POST",
        "/repos/acme/demo/issues/42/comments",
        {"body": "File a.js:10 — avoid global var"},
    )
    assert outcome.email is not None and outcome.email.status == "sent"
    html_part = transport.sent[0].get_body(preferencelist=("html",))
    assert html_part is not None
    assert html_part.get_content().strip() == "<p>File a.js:10 — avoid global var</p>"


@pytest.mark.anyio
async def test_no_response_review_is_commented_but_not_emailed() -> None:
    github = FakeGitHub()
    transport = RecordingTransport()

    outcome = await dispatch(
        event=PullRequestEvent(number=7, author="alice"),
        review=ReviewResult.no_response(),
        repo=REPO,
        channels=_channels(github, transport),
    )

    assert outcome.commented is True
    assert github.requests[0][2] == {"body": "Error or no response!"}
    assert outcome.email is None
    assert transport.sent == []


@pytest.mark.anyio
async def test_no_response_phrase_check_is_case_insensitive() -> None:
    github = FakeGitHub()
    transport = RecordingTransport()
    review = ReviewResult(text="Model returned NO RESPONSE for this diff", is_empty=False)

    outcome = await dispatch(
        event=PullRequestEvent(number=7),
        review=review,
        repo=REPO,
        channels=_channels(github, transport),
    )

    assert outcome.commented is True
    assert transport.sent == []


@pytest.mark.anyio
async def test_pull_request_is_labeled_when_label_configured() -> None:
    github = FakeGitHub()
    outcome = await dispatch(
        event=PullRequestEvent(number=42),
        review=ReviewResult(text="LGTM overall, minor nits", is_empty=False),
        repo=REPO,
        channels=_channels(github, RecordingTransport(), review_label="code-review"),
    )
    assert outcome.labeled is True
    assert ("POST", "/repos/acme/demo/issues/42/labels", {"labels": ["code-review"]}) in github.requests


@pytest.mark.anyio
async def test_push_review_is_emailed_without_comment() -> None:
    github = FakeGitHub()
    transport = RecordingTransport()
    outcome = await dispatch(
        event=PushEvent(commits=(CommitRef(id="c1"),), author="bob"),
        review=ReviewResult(text="a.py:3 shadows a builtin", is_empty=False),
        repo=REPO,
        channels=_channels(github, transport),
    )
    assert outcome.commented is False
    assert github.requests == []
    assert transport.sent[0]["Subject"] == "Code Review: Push Event in DEMO By bob"


@pytest.mark.anyio
async def test_push_review_issue_is_numbered_after_latest() -> None:
    github = FakeGitHub(latest_issues=[{"number": 12, "title": "Code Review Issue #4"}])
    outcome = await dispatch(
        event=PushEvent(commits=(CommitRef(id="c1"),), author="bob"),
        review=ReviewResult(text="a.py:3 shadows a builtin", is_empty=False),
        repo=REPO,
        channels=_channels(github, RecordingTransport(), review_label="code-review", create_push_issue=True),
    )
    assert outcome.issue_number == 99
    method, path, body = github.requests[-1]
    assert (method, path) == ("POST", "/repos/acme/demo/issues")
    assert body == {"title": "Code Review Issue #5", "body": "a.py:3 shadows a builtin", "labels": ["code-review"]}


@pytest.mark.anyio
async def test_short_rendered_body_is_not_emailed() -> None:
    transport = RecordingTransport()
    outcome = await dispatch(
        event=PushEvent(commits=(CommitRef(id="c1"),)),
        review=ReviewResult(text="ok", is_empty=False),
        repo=REPO,
        channels=_channels(FakeGitHub(), transport),
    )
    # "<p>ok</p>" 只有 9 个字符
    assert outcome.email is None
    assert transport.sent == []


@pytest.mark.anyio
async def test_unconfigured_email_is_skipped() -> None:
    outcome = await dispatch(
        event=PushEvent(commits=(CommitRef(id="c1"),)),
        review=ReviewResult(text="a.py:3 shadows a builtin", is_empty=False),
        repo=REPO,
        channels=_channels(FakeGitHub(), RecordingTransport(), email_config=EmailConfig()),
    )
    assert outcome.email is not None
    assert outcome.email.status == "skipped"


@pytest.mark.anyio
async def test_push_review_issue_numbering_ignores_labeled_pull_requests() -> None:
    github = FakeGitHub(
        latest_issues=[
            {"number": 7, "title": "Add feature", "pull_request": {"url": "https://api.github.com/repos/acme/demo/pulls/7"}},
            {"number": 5, "title": "Code Review Issue #4"},
        ]
    )
    await dispatch(
        event=PushEvent(commits=(CommitRef(id="c1"),), author="bob"),
        review=ReviewResult(text="a.py:3 shadows a builtin", is_empty=False),
        repo=REPO,
        channels=_channels(github, RecordingTransport(), review_label="code-review", create_push_issue=True),
    )
    method, path, body = github.requests[-1]
    assert (method, path) == ("POST", "/repos/acme/demo/issues")
    assert body["title"] == "Code Review Issue #5"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(201, json={}),
        httpx.Response(201, text="<html>proxy error</html>"),
    ],
)
async def test_malformed_comment_response_raises_upstream_error(response: httpx.Response) -> None:
    client = GitHubClient(
        api_base_url="https://api.github.com",
        token="t",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response)),
    )
    with pytest.raises(UpstreamFetchError):
        await dispatch(
            event=PullRequestEvent(number=42),
            review=ReviewResult(text="LGTM overall, minor nits", is_empty=False),
            repo=REPO,
            channels=DispatchChannels(github_client=client, email_config=EMAIL, email_transport=RecordingTransport()),
        )


@pytest.mark.anyio
async def test_non_list_issues_response_raises_upstream_error() -> None:
    client = GitHubClient(
        api_base_url="https://api.github.com",
        token="t",
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"message": "oops"}))
        ),
    )
    with pytest.raises(UpstreamFetchError):
        await client.list_issues(repo=REPO, label="code-review")
