"""Retrieve every issue matching a JQL query, page by page."""

from __future__ import annotations

import logging
from typing import List, Protocol

from bughunter.clients.jira import DEFAULT_PAGE_SIZE, clamp_page_size
from bughunter.core.errors import ValidationError
from bughunter.models.jira import Issue, SearchPage

logger = logging.getLogger(__name__)


class IssueSearcher(Protocol):
    async def search(self, jql: str, start_at: int, max_results: int) -> SearchPage: ...


class PagedSearch:
    def __init__(self, client: IssueSearcher):
        self.client = client

    async def fetch_all(self, jql: str, page_size: int = DEFAULT_PAGE_SIZE) -> List[Issue]:
        """Return all issues for ``jql`` in server order.

        Pages are requested one after another: the next ``startAt`` is the
        previous one plus the number of issues actually received, so a short
        page never skips or repeats records. Any failure discards what was
        already fetched.
        """
        if not jql or not jql.strip():
            raise ValidationError("jql")
        page_size = clamp_page_size(page_size)

        issues: List[Issue] = []
        start_at = 0
        pages = 0
        total = 0

        while True:
            page = await self.client.search(jql, start_at, page_size)
            pages += 1

            if pages > 1 and page.total != total:
                logger.debug(
                    "[SEARCH] total changed between pages: %s -> %s", total, page.total
                )
            total = page.total

            issues.extend(page.issues)
            start_at += len(page.issues)

            # stop when we've retrieved all reported by the server
            if start_at >= total:
                break

            # nonzero total but an empty page: the server stalled, stop here
            if total == 0 or not page.issues:
                logger.warning(
                    "[SEARCH] empty page at startAt=%s with total=%s, stopping",
                    start_at,
                    total,
                )
                break

        logger.info("[SEARCH] fetched %d issues in %d page(s)", len(issues), pages)
        return issues
