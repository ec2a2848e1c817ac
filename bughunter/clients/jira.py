from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from bughunter.clients.adf import build_document
from bughunter.core.config import JiraConfig
from bughunter.core.errors import (
    TrackerDecodeError,
    TrackerEndpointRemoved,
    TrackerRequestError,
    TrackerTransportError,
    ValidationError,
    body_snippet,
)
from bughunter.models.jira import Issue, IssueCreateRequest, IssueCreateResult, SearchPage

logger = logging.getLogger(__name__)

API_PREFIX = "/rest/api/3"
SEARCH_FIELDS = "summary,description,issuetype,priority,assignee,labels"

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000


class _Omit:
    """Marks a payload field that must be left out, as opposed to sent as null."""

    def __repr__(self) -> str:
        return "OMIT"


OMIT: Any = _Omit()


def _put(fields: Dict[str, Any], name: str, value: Any) -> None:
    if value is OMIT:
        return
    fields[name] = value


def clamp_page_size(max_results: int) -> int:
    """Replace page sizes outside (0, 1000] with the default of 50."""
    if max_results <= 0 or max_results > MAX_PAGE_SIZE:
        return DEFAULT_PAGE_SIZE
    return max_results


def build_issue_payload(req: IssueCreateRequest) -> Dict[str, Any]:
    """Shape the ``POST /issue`` body for a validated request.

    Jira reads an absent field and an explicit null differently: a null
    ``priority`` clears it, while ``assignee`` and ``labels`` are left out
    entirely when unset so the project defaults apply.
    """
    fields: Dict[str, Any] = {}
    _put(fields, "project", {"key": req.project_key})
    _put(fields, "summary", req.summary)
    _put(fields, "description", build_document(req.description))
    _put(fields, "issuetype", {"name": req.issue_type})
    _put(fields, "priority", {"name": req.priority} if req.priority else None)
    _put(fields, "assignee", {"name": req.assignee} if req.assignee else OMIT)
    _put(fields, "labels", list(req.labels) if req.labels else OMIT)
    return {"fields": fields}


class JiraClient:
    """Async client for the Jira Cloud REST API v3 (basic auth, email + API token).

    One instance owns one pooled ``httpx.AsyncClient`` and is safe to share
    between concurrent requests. Errors are normalized into the tracker
    exceptions of ``bughunter.core.errors``.
    """

    def __init__(
        self,
        config: JiraConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=f"{config.base_url}{API_PREFIX}",
            auth=httpx.BasicAuth(config.email, config.api_token.get_secret_value()),
            headers={"Accept": "application/json"},
            timeout=config.timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def browse_url(self, issue_key: str) -> str:
        return f"{self.config.base_url}/browse/{issue_key}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform one HTTP call and return the parsed JSON body.

        410 raises TrackerEndpointRemoved, any other non-2xx raises
        TrackerRequestError, connection failures raise TrackerTransportError
        and an unparseable 2xx body raises TrackerDecodeError.
        """
        try:
            r = await self._client.request(method, path, params=params, json=json_body)
        except httpx.TimeoutException as e:
            logger.warning("[JIRA] timeout on %s %s", method, path)
            raise TrackerTransportError(f"Jira timeout on {method} {path}") from e
        except httpx.RequestError as e:
            logger.warning("[JIRA] unreachable %s %s: %s", method, path, e)
            raise TrackerTransportError(f"Jira unreachable on {method} {path}: {e}") from e

        if r.status_code == 410:
            logger.warning("[JIRA] endpoint removed (410) on %s %s", method, path)
            raise TrackerEndpointRemoved(r.status_code, r.text)

        if r.status_code < 200 or r.status_code >= 300:
            logger.warning(
                "[JIRA] HTTP %s on %s %s: %s", r.status_code, method, path, body_snippet(r.text)
            )
            raise TrackerRequestError(r.status_code, r.text)

        try:
            return r.json()
        except ValueError as e:
            raise TrackerDecodeError(
                f"Unable to parse Jira response for {method} {path}: {body_snippet(r.text)}"
            ) from e

    async def create_issue(self, req: IssueCreateRequest) -> IssueCreateResult:
        payload = build_issue_payload(req)
        logger.info(
            "[JIRA] create issue project=%s type=%s", req.project_key, req.issue_type
        )
        data = await self._request("POST", "/issue", json_body=payload)
        try:
            result = IssueCreateResult.model_validate(data)
        except PydanticValidationError as e:
            raise TrackerDecodeError(f"Unable to parse Jira create response: {e}") from e
        logger.info("[JIRA] created %s", result.key)
        return result

    async def search(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = DEFAULT_PAGE_SIZE,
    ) -> SearchPage:
        """Fetch one page of issues matching ``jql``."""
        if not jql or not jql.strip():
            raise ValidationError("jql")
        params = {
            "jql": jql,
            "startAt": max(0, start_at),
            "maxResults": clamp_page_size(max_results),
            "fields": SEARCH_FIELDS,
        }
        logger.debug(
            "[JIRA] search startAt=%s maxResults=%s", params["startAt"], params["maxResults"]
        )
        data = await self._request("GET", "/search", params=params)
        try:
            return SearchPage.model_validate(data)
        except PydanticValidationError as e:
            raise TrackerDecodeError(f"Unable to parse Jira search response: {e}") from e

    async def get_issue(self, issue_key: str) -> Issue:
        if not issue_key or not issue_key.strip():
            raise ValidationError("issue_key")
        data = await self._request(
            "GET",
            f"/issue/{issue_key.strip()}",
            params={"fields": SEARCH_FIELDS},
        )
        try:
            return Issue.model_validate(data)
        except PydanticValidationError as e:
            raise TrackerDecodeError(f"Unable to parse Jira issue {issue_key}: {e}") from e
