"""GitHub REST API client for onboarding, pull request and workflow data."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import ApiError, SyncError
from .http_client import JsonApiClient, parse_datetime
from .models import (
    Commit,
    MemberAddEvent,
    PullRequest,
    PullRequestDetail,
    RateLimitStatus,
    Repository,
    Review,
    WorkflowRun,
)

logger = logging.getLogger(__name__)


class GitHubClient(JsonApiClient):
    """Small, typed client for the GitHub REST and search APIs.

    One instance is created per process and reused for every call.
    """

    _SERVICE_NAME = "GitHub API"
    _API_VERSION = "2022-11-28"
    _PAGE_SIZE = 100
    _SEARCH_PAGE_SIZE = 10
    _OLDEST_COMMITS = 10

    def __init__(self, token: str, base_url: str = "https://api.github.com", timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            token: Personal access or installation token.
            base_url: REST API root, overridable for GitHub Enterprise Server.
            timeout_seconds: Per-request timeout in seconds.
        """
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds)
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": self._API_VERSION,
            }
        )

    def get_rate_limit_status(self) -> RateLimitStatus:
        """Return the core REST rate-limit bucket."""
        payload = self._get_json("rate_limit")
        core = (payload.get("resources") or {}).get("core") or payload.get("rate")
        if not isinstance(core, dict):
            raise ApiError(f"GitHub rate limit payload is missing the core bucket: {payload}")

        return RateLimitStatus(
            limit=int(core.get("limit", 0)),
            remaining=int(core.get("remaining", 0)),
            used=int(core.get("used", 0)),
            reset_at=datetime.fromtimestamp(int(core.get("reset", 0)), tz=timezone.utc),
        )

    def list_audit_log_add_member_events(self, enterprise: str) -> List[MemberAddEvent]:
        """List ``org.add_member`` audit-log entries for an enterprise."""
        items = self._get_json_list(
            f"enterprises/{enterprise}/audit-log",
            params={"phrase": "action:org.add_member", "include": "web", "per_page": self._PAGE_SIZE},
        )
        events: List[MemberAddEvent] = []

        for item in items:
            user = item.get("user")
            created_at = self._parse_audit_timestamp(item.get("created_at") or item.get("@timestamp"))
            if not user or created_at is None:
                continue
            user_id = item.get("user_id")
            events.append(
                MemberAddEvent(
                    user=str(user),
                    user_id=int(user_id) if user_id is not None else None,
                    created_at=created_at,
                )
            )

        return events

    def list_repositories(self, organizations: Iterable[str]) -> List[Repository]:
        """List repositories of every given organization."""
        repositories: List[Repository] = []

        for organization in organizations:
            items = self._get_json_list(
                f"orgs/{organization}/repos",
                params={"per_page": self._PAGE_SIZE},
            )
            for item in items:
                repo_id = item.get("id")
                name = item.get("name")
                if repo_id is None or not name:
                    continue
                owner = (item.get("owner") or {}).get("login") or organization
                repositories.append(
                    Repository(
                        id=int(repo_id),
                        name=str(name),
                        owner=str(owner),
                        default_branch=str(item.get("default_branch") or "main"),
                    )
                )

        return repositories

    def list_commits(self, owner: str, repo: str, author: str) -> List[Commit]:
        """List the oldest commits authored by ``author``, oldest first.

        GitHub lists commits newest first, so for multi-page histories the
        pages are read backwards from the last one until at least
        ``_OLDEST_COMMITS`` commits are collected.
        """
        path = f"repos/{owner}/{repo}/commits"
        params: Dict[str, Any] = {"author": author, "per_page": self._PAGE_SIZE}
        items, last_page = self._get_json_page(path, params=params)

        if last_page is not None and last_page > 1:
            first_page_items = items
            items = []
            page = last_page
            while page >= 1 and len(items) < self._OLDEST_COMMITS:
                if page == 1:
                    page_items = first_page_items
                else:
                    page_items, _ = self._get_json_page(path, params={**params, "page": page})
                items.extend(page_items)
                page -= 1

        commits: List[Commit] = []

        for item in items:
            authored_at = parse_datetime(((item.get("commit") or {}).get("author") or {}).get("date"))
            if authored_at is None:
                continue
            commits.append(
                Commit(
                    sha=str(item.get("sha", "")),
                    author_login=str((item.get("author") or {}).get("login") or author),
                    authored_at=authored_at,
                )
            )

        commits.sort(key=lambda commit: commit.authored_at)
        return commits

    def search_merged_pull_requests(self, organization: str, author: str) -> List[PullRequest]:
        """Search merged pull requests by ``author``, oldest creation date first."""
        items = self._search_issues(f"author:{author} type:pr org:{organization} is:merged")
        return [self._to_pull_request(item) for item in items]

    def search_approved_reviews(self, organization: str, approver: str) -> List[Review]:
        """Return the APPROVED reviews ``approver`` submitted on pull requests in an organization.

        Search only identifies the pull requests; the review timestamps come
        from each pull request's review listing. Only the first
        ``_SEARCH_PAGE_SIZE`` matches by PR creation date are inspected, so the
        earliest approval is missed when it landed on a later-created PR.
        A pull request whose reviews cannot be listed is logged and skipped.
        """
        items = self._search_issues(
            f"type:pr org:{organization} reviewed-by:{approver} review:approved"
        )
        reviews: List[Review] = []

        for item in items:
            owner, repo = self._repository_from_url(item.get("repository_url", ""))
            number = item.get("number")
            if not owner or not repo or number is None:
                continue
            try:
                pr_reviews = self.list_reviews(owner, repo, int(number))
            except SyncError as exc:
                logger.warning(
                    "Error fetching reviews for %s/%s#%s: %s",
                    owner,
                    repo,
                    number,
                    exc,
                    extra={"login": approver, "repository": repo, "number": number},
                )
                continue
            for review in pr_reviews:
                if review.reviewer_login == approver and review.state.upper() == "APPROVED":
                    reviews.append(review)

        return reviews

    def list_closed_pull_requests(self, repository: Repository) -> List[PullRequest]:
        """List closed pull requests of a repository."""
        items = self._get_json_list(
            f"repos/{repository.owner}/{repository.name}/pulls",
            params={"state": "closed", "per_page": self._PAGE_SIZE},
        )
        return [self._to_pull_request(item) for item in items]

    def get_pull_request(self, repository: Repository, number: int) -> PullRequestDetail:
        """Fetch the detail payload of one pull request."""
        item = self._get_json(f"repos/{repository.owner}/{repository.name}/pulls/{number}")
        pr_id = item.get("id")
        if pr_id is None:
            raise ApiError(
                "GitHub pull request payload is missing required fields: "
                f"repo={repository.name}, number={number}"
            )

        return PullRequestDetail(
            id=int(pr_id),
            number=int(item.get("number", number)),
            created_at=parse_datetime(item.get("created_at")),
            closed_at=parse_datetime(item.get("closed_at")),
            merged_at=parse_datetime(item.get("merged_at")),
            additions=int(item.get("additions") or 0),
            deletions=int(item.get("deletions") or 0),
            changed_files=int(item.get("changed_files") or 0),
            comments=int(item.get("comments") or 0),
            review_comments=int(item.get("review_comments") or 0),
        )

    def list_reviews(self, owner: str, repo: str, number: int) -> List[Review]:
        """List reviews of a pull request in submission order."""
        items = self._get_json_list(
            f"repos/{owner}/{repo}/pulls/{number}/reviews",
            params={"per_page": self._PAGE_SIZE},
        )
        reviews: List[Review] = []

        for item in items:
            review_id = item.get("id")
            if review_id is None:
                continue
            reviews.append(
                Review(
                    id=int(review_id),
                    reviewer_login=str((item.get("user") or {}).get("login") or ""),
                    state=str(item.get("state") or ""),
                    submitted_at=parse_datetime(item.get("submitted_at")),
                )
            )

        return reviews

    def list_workflow_runs(self, repository: Repository, branch: str) -> List[WorkflowRun]:
        """List workflow runs on ``branch``, excluding pull request runs."""
        payload = self._get_json(
            f"repos/{repository.owner}/{repository.name}/actions/runs",
            params={"branch": branch, "exclude_pull_requests": "true", "per_page": self._PAGE_SIZE},
        )
        runs: List[WorkflowRun] = []

        for item in payload.get("workflow_runs", []):
            run_id = item.get("id")
            workflow_id = item.get("workflow_id")
            if run_id is None or workflow_id is None:
                continue
            runs.append(
                WorkflowRun(
                    id=int(run_id),
                    workflow_id=int(workflow_id),
                    name=str(item.get("name") or ""),
                    conclusion=str(item.get("conclusion") or ""),
                    run_number=int(item.get("run_number") or 0),
                    started_at=parse_datetime(item.get("run_started_at")),
                    completed_at=parse_datetime(item.get("updated_at")),
                    event=str(item.get("event") or ""),
                )
            )

        return runs

    def _search_issues(self, query: str) -> List[Dict[str, Any]]:
        """Run an issue search sorted by creation date ascending."""
        payload = self._get_json(
            "search/issues",
            params={
                "q": query,
                "sort": "created",
                "order": "asc",
                "per_page": self._SEARCH_PAGE_SIZE,
            },
        )
        return list(payload.get("items", []))

    @staticmethod
    def _to_pull_request(item: Dict[str, Any]) -> PullRequest:
        pr_id = item.get("id")
        number = item.get("number")
        if pr_id is None or number is None:
            raise ApiError(f"GitHub pull request payload is missing required fields: payload={item}")

        # Search results carry the merge time under pull_request.merged_at.
        merged_at = item.get("merged_at") or (item.get("pull_request") or {}).get("merged_at")
        return PullRequest(
            id=int(pr_id),
            number=int(number),
            title=str(item.get("title") or ""),
            author_login=str((item.get("user") or {}).get("login") or ""),
            created_at=parse_datetime(item.get("created_at")),
            closed_at=parse_datetime(item.get("closed_at")),
            merged_at=parse_datetime(merged_at),
        )

    @staticmethod
    def _repository_from_url(repository_url: str) -> Tuple[str, str]:
        parts = repository_url.rstrip("/").split("/")
        if len(parts) < 2:
            return "", ""
        return parts[-2], parts[-1]

    @staticmethod
    def _parse_audit_timestamp(value: Any) -> Optional[datetime]:
        # Audit-log entries may carry epoch milliseconds instead of ISO strings.
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return parse_datetime(value)
