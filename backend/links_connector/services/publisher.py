"""
GitHub publisher: branch → commit → pull request.

Publishing is a fixed sequence of GitHub REST calls made with httpx:

  1. GET  /repos/{owner}/{repo}/git/ref/heads/{base}     tip of the base branch
  2. GET  /repos/{owner}/{repo}/git/ref/heads/{branch}   does the branch exist?
  3. POST /repos/{owner}/{repo}/git/refs                 create the branch
  4. PUT  /repos/{owner}/{repo}/contents/{path}          commit the file
  5. POST /repos/{owner}/{repo}/pulls                    open the PR

Each call is awaited in turn.  There is no rollback: if step 4 fails the
branch created in step 3 stays behind.
"""

import base64
import logging
import time
from pathlib import PurePosixPath
from typing import Callable, Optional
from urllib.parse import quote

import httpx

from links_connector.services.security import sanitize_commit_message, validate_branch_name

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "link/"
PR_TITLE_PREFIX = "Add linkpost: "
PR_BODY = "Automated link post created from email."

GITHUB_API_VERSION = "2022-11-28"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class PublishError(Exception):
    """A GitHub API call failed.  The message is safe to log, not to send."""


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def branch_name_for(file_name: str) -> str:
    """content/posts/links/2024-01-01-my-post.md → link/2024-01-01-my-post"""
    return f"{BRANCH_PREFIX}{PurePosixPath(file_name).stem}"


class GitHubPublisher:
    """
    Opens a pull request that adds one file to a GitHub repository.

    A new httpx.AsyncClient is opened for every publish() call and closed
    when it returns.  Pass ``transport`` to route requests elsewhere (tests
    use httpx.MockTransport).
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        base_branch: str = "main",
        committer_name: str = "links-email-connector",
        committer_email: str = "links@rahulmenon.dev",
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.owner = owner
        self.repo = repo
        self.base_branch = base_branch
        self.committer = {"name": committer_name, "email": committer_email}
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_url,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": "links-email-connector",
            },
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        expected: tuple[int, ...],
        **kwargs,
    ) -> httpx.Response:
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"GitHub {method} {path} failed: {exc}")
            raise PublishError(f"GitHub request failed: {method} {path}") from exc

        if response.status_code not in expected:
            logger.error(
                f"GitHub {method} {path} returned {response.status_code}: "
                f"{response.text[:500]}"
            )
            raise PublishError(
                f"GitHub returned {response.status_code} for {method} {path}"
            )
        return response

    @staticmethod
    def _field(response: httpx.Response, *keys: str):
        """Dig a value out of a JSON response; a missing key is a PublishError."""
        try:
            value = response.json()
            for key in keys:
                value = value[key]
        except (ValueError, KeyError, TypeError) as exc:
            raise PublishError(
                f"Unexpected GitHub response: missing {'.'.join(keys)}"
            ) from exc
        return value

    # ------------------------------------------------------------------
    # Individual steps
    # ------------------------------------------------------------------

    async def get_branch_sha(self, client: httpx.AsyncClient, branch: str) -> str:
        response = await self._request(
            client, "GET", f"{self._repo_path}/git/ref/heads/{branch}", (200,)
        )
        return self._field(response, "object", "sha")

    async def branch_exists(self, client: httpx.AsyncClient, branch: str) -> bool:
        """404 means the branch is free; anything but 200/404 is an error."""
        response = await self._request(
            client, "GET", f"{self._repo_path}/git/ref/heads/{branch}", (200, 404)
        )
        return response.status_code == 200

    async def resolve_branch_name(self, client: httpx.AsyncClient, file_name: str) -> str:
        """
        Pick the branch to publish on.

        Uses link/<file stem>; if that already exists, appends a base-36
        millisecond timestamp.

        Raises:
            ValueError: the derived branch name is not a safe ref name.
        """
        candidate = branch_name_for(file_name)
        if not validate_branch_name(candidate):
            raise ValueError(f"Invalid branch name {candidate!r}")

        if not await self.branch_exists(client, candidate):
            return candidate

        unique = f"{candidate}-{_to_base36(int(self._clock() * 1000))}"
        if not validate_branch_name(unique):
            raise ValueError(f"Invalid branch name {unique!r}")
        logger.info(f"Branch {candidate!r} already exists, using {unique!r}")
        return unique

    async def create_branch(self, client: httpx.AsyncClient, branch: str, sha: str) -> None:
        await self._request(
            client,
            "POST",
            f"{self._repo_path}/git/refs",
            (201,),
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    async def create_file(
        self,
        client: httpx.AsyncClient,
        branch: str,
        file_name: str,
        content: str,
        title: str,
    ) -> None:
        await self._request(
            client,
            "PUT",
            f"{self._repo_path}/contents/{quote(file_name)}",
            (200, 201),
            json={
                "message": f"{PR_TITLE_PREFIX}{sanitize_commit_message(title)}",
                "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
                "branch": branch,
                "committer": self.committer,
                "author": self.committer,
            },
        )

    async def create_pull_request(
        self, client: httpx.AsyncClient, branch: str, title: str
    ) -> str:
        response = await self._request(
            client,
            "POST",
            f"{self._repo_path}/pulls",
            (201,),
            json={
                "title": f"{PR_TITLE_PREFIX}{title}",
                "head": branch,
                "base": self.base_branch,
                "body": PR_BODY,
            },
        )
        return self._field(response, "html_url")

    # ------------------------------------------------------------------
    # Full sequence
    # ------------------------------------------------------------------

    async def publish(self, file_name: str, content: str, title: str) -> str:
        """
        Commit ``content`` at ``file_name`` on a new branch and open a PR.

        Returns:
            The pull request's web URL.

        Raises:
            ValueError:   the branch name derived from file_name is unsafe.
            PublishError: any GitHub call failed or returned an unexpected status.
        """
        async with self._client() as client:
            base_sha = await self.get_branch_sha(client, self.base_branch)
            branch = await self.resolve_branch_name(client, file_name)
            await self.create_branch(client, branch, base_sha)
            logger.info(f"Created branch {branch!r} at {base_sha[:7]}")

            await self.create_file(client, branch, file_name, content, title)
            pr_url = await self.create_pull_request(client, branch, title)

        logger.info(f"Opened pull request {pr_url}")
        return pr_url
