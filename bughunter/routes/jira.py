from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from bughunter.clients.adf import document_to_text
from bughunter.clients.jira import JiraClient
from bughunter.core.config import Settings
from bughunter.core.deps import get_jira_client, get_paged_search, get_settings
from bughunter.core.errors import (
    BugHunterError,
    TrackerRequestError,
    ValidationError,
    status_for,
)
from bughunter.models.jira import CreateIssueBody, Issue, IssueCreateResult
from bughunter.services.search import PagedSearch

router = APIRouter(prefix="/api/jira", tags=["jira"])

_PROJECT_KEY_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")


def _http_error(e: BugHunterError, action: str) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(400, str(e))
    return HTTPException(status_for(e), f"Jira error during {action}: {e}")


def _map_issue(issue: Issue) -> Dict[str, Any]:
    f = issue.fields
    return {
        "id": issue.id,
        "key": issue.key,
        "self": issue.self_link,
        "summary": f.summary,
        "description": document_to_text(f.description) if f.description else None,
        "type": f.issue_type,
        "priority": f.priority,
        "assignee": f.assignee,
        "labels": f.labels,
    }


def _map_created(result: IssueCreateResult, client: JiraClient) -> Dict[str, Any]:
    return {
        "key": result.key,
        "id": result.id,
        "self": result.self_link,
        "browse_url": client.browse_url(result.key),
    }


def bugs_jql(project_key: Optional[str]) -> str:
    if not project_key or not project_key.strip():
        return "issuetype = Bug ORDER BY created DESC"
    key = project_key.strip()
    if not _PROJECT_KEY_RE.match(key):
        raise ValidationError("project_key", f"Invalid project key: {key!r}")
    return f"project = {key} AND issuetype = Bug ORDER BY created DESC"


@router.post("/issue", status_code=201)
async def create_issue(
    body: CreateIssueBody,
    response: Response,
    client: JiraClient = Depends(get_jira_client),
) -> Dict[str, Any]:
    try:
        req = body.to_request()
        result = await client.create_issue(req)
    except BugHunterError as e:
        raise _http_error(e, "create_issue")

    response.headers["Location"] = f"/api/jira/issue/{result.key}"
    return _map_created(result, client)


@router.get("/issue/{issue_key}")
async def get_issue(
    issue_key: str,
    client: JiraClient = Depends(get_jira_client),
) -> Dict[str, Any]:
    try:
        issue = await client.get_issue(issue_key)
    except TrackerRequestError as e:
        if e.status == 404:
            raise HTTPException(404, f"Issue {issue_key} not found")
        raise _http_error(e, "get_issue")
    except BugHunterError as e:
        raise _http_error(e, "get_issue")

    return _map_issue(issue)


@router.get("/issues/bugs")
async def get_bugs(
    project_key: Optional[str] = None,
    project_key_camel: Optional[str] = Query(default=None, alias="projectKey"),
    search: PagedSearch = Depends(get_paged_search),
    cfg: Settings = Depends(get_settings),
) -> List[Dict[str, Any]]:
    try:
        # both spellings are accepted; snake_case wins
        jql = bugs_jql(project_key or project_key_camel)
        issues = await search.fetch_all(jql, cfg.jira_page_size)
    except BugHunterError as e:
        raise _http_error(e, "search")

    return [_map_issue(i) for i in issues]


@router.get("/issues")
async def get_all_issues(
    jql: str,
    page_size: Optional[int] = None,
    search: PagedSearch = Depends(get_paged_search),
    cfg: Settings = Depends(get_settings),
) -> List[Dict[str, Any]]:
    try:
        size = cfg.jira_page_size if page_size is None else page_size
        issues = await search.fetch_all(jql, size)
    except BugHunterError as e:
        raise _http_error(e, "search")

    return [_map_issue(i) for i in issues]


@router.get("/search")
async def search_page(
    jql: str,
    start_at: int = Query(default=0, ge=0),
    max_results: Optional[int] = None,
    client: JiraClient = Depends(get_jira_client),
    cfg: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    try:
        size = cfg.jira_page_size if max_results is None else max_results
        page = await client.search(jql, start_at, size)
    except BugHunterError as e:
        raise _http_error(e, "search")

    return {
        "startAt": page.start_at,
        "maxResults": page.max_results,
        "total": page.total,
        "returned": len(page.issues),
        "issues": [_map_issue(i) for i in page.issues],
    }
