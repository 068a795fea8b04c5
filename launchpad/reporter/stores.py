"""
Status Stores

Where the run summary is upserted. Every store keeps at most one record per
signature and tolerates concurrent writers: last writer wins, a record that
disappears mid-upsert is recreated.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

import httpx
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from launchpad.core.logger import get_logger
from launchpad.database import get_session
from launchpad.models.status_records import StatusRecordRow

logger = get_logger("status_store")


def marker_for(signature: str) -> str:
    """Hidden marker embedded in the record body."""
    return f"<!-- {signature} -->"


class StatusStore(ABC):
    """Upsert target for run summaries."""

    @abstractmethod
    async def upsert(self, signature: str, body: str, pull_request: Optional[int] = None) -> str:
        """
        Create or overwrite the record for a signature.

        Returns:
            "created" or "updated"
        """


# ============================================================================
# GITHUB PULL REQUEST COMMENTS
# ============================================================================

class GitHubCommentStore(StatusStore):
    """
    Issue comments on the pull request, found by their hidden marker.

    Usage:
        store = GitHubCommentStore("owner/repo", token)
        await store.upsert("launchpad:app:pr-12", body, pull_request=12)
    """

    PAGE_SIZE = 100

    def __init__(
        self,
        repository: str,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.repository = repository
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    async def _find_comments(self, client: httpx.AsyncClient, pull_request: int, marker: str) -> List[Dict[str, Any]]:
        """All comments carrying the marker, oldest first."""
        found: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = await client.get(
                f"/repos/{self.repository}/issues/{pull_request}/comments",
                params={"per_page": self.PAGE_SIZE, "page": page},
            )
            response.raise_for_status()
            comments = response.json()
            found.extend(c for c in comments if marker in (c.get("body") or ""))
            if len(comments) < self.PAGE_SIZE:
                return found
            page += 1

    async def _create(self, client: httpx.AsyncClient, pull_request: int, body: str) -> None:
        response = await client.post(
            f"/repos/{self.repository}/issues/{pull_request}/comments",
            json={"body": body},
        )
        response.raise_for_status()

    async def upsert(self, signature: str, body: str, pull_request: Optional[int] = None) -> str:
        if pull_request is None:
            raise ValueError("GitHubCommentStore needs a pull request number")

        marker = marker_for(signature)
        async with self._client() as client:
            existing = await self._find_comments(client, pull_request, marker)

            if not existing:
                await self._create(client, pull_request, body)
                logger.info(f"[REPORTER] 💬 Created status comment on PR #{pull_request}")
                return "created"

            keep, duplicates = existing[0], existing[1:]
            response = await client.patch(
                f"/repos/{self.repository}/issues/comments/{keep['id']}",
                json={"body": body},
            )
            if response.status_code == 404:
                # Deleted between list and update
                await self._create(client, pull_request, body)
                logger.info(f"[REPORTER] 💬 Status comment vanished, recreated on PR #{pull_request}")
                return "created"
            response.raise_for_status()

            # Two runs created concurrently: fold them back into one
            for comment in duplicates:
                dup = await client.delete(f"/repos/{self.repository}/issues/comments/{comment['id']}")
                if dup.status_code not in (204, 404):
                    dup.raise_for_status()

        logger.info(f"[REPORTER] 💬 Updated status comment on PR #{pull_request}")
        return "updated"


# ============================================================================
# DATABASE
# ============================================================================

class DatabaseStatusStore(StatusStore):
    """status_records table; the unique signature constraint arbitrates races."""

    MAX_TRIES = 3

    async def upsert(self, signature: str, body: str, pull_request: Optional[int] = None) -> str:
        for _ in range(self.MAX_TRIES):
            try:
                async with get_session() as session:
                    stmt = select(StatusRecordRow).where(StatusRecordRow.signature == signature)
                    row = (await session.execute(stmt)).scalar_one_or_none()
                    if row is not None:
                        row.body = body
                        row.pull_request = pull_request
                        result = "updated"
                    else:
                        session.add(StatusRecordRow(signature=signature, pull_request=pull_request, body=body))
                        result = "created"
                return result
            except IntegrityError:
                # Another writer created it first; next pass updates it
                logger.debug(f"[REPORTER] Concurrent create for {signature}, retrying as update")

        raise RuntimeError(f"Could not upsert status record {signature}")

    async def get(self, signature: str) -> Optional[str]:
        async with get_session() as session:
            stmt = select(StatusRecordRow.body).where(StatusRecordRow.signature == signature)
            return (await session.execute(stmt)).scalar_one_or_none()
