from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request

from bughunter.clients.jira import JiraClient
from bughunter.clients.llm import LLMClient
from bughunter.core.config import Settings
from bughunter.services.search import PagedSearch
from bughunter.services.triage import TriagePipeline


def _state(request: Request, name: str) -> Any:
    client = getattr(request.app.state, name, None)
    if client is None:
        raise HTTPException(503, f"{name} client not configured")
    return client


def get_settings(request: Request) -> Settings:
    """The Settings the app was created with."""
    return request.app.state.settings


def get_jira_client(request: Request) -> JiraClient:
    return _state(request, "jira")


def get_llm_client(request: Request) -> LLMClient:
    return _state(request, "llm")


def get_paged_search(client: JiraClient = Depends(get_jira_client)) -> PagedSearch:
    return PagedSearch(client)


def _pipeline(cfg: Settings, llm: Any, jira: Any) -> TriagePipeline:
    return TriagePipeline(
        llm,
        jira,
        project_key=cfg.triage_project_key,
        issue_type=cfg.triage_issue_type,
        labels=cfg.triage_labels,
        assignee=cfg.triage_assignee,
    )


def get_summarizer(
    llm: LLMClient = Depends(get_llm_client),
    cfg: Settings = Depends(get_settings),
) -> TriagePipeline:
    # Summarizing alone does not need Jira.
    return _pipeline(cfg, llm, None)


def get_ticket_pipeline(
    llm: LLMClient = Depends(get_llm_client),
    jira: JiraClient = Depends(get_jira_client),
    cfg: Settings = Depends(get_settings),
) -> TriagePipeline:
    return _pipeline(cfg, llm, jira)
