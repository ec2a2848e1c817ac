from __future__ import annotations

from typing import Any, Dict, Union

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse

from bughunter.clients.jira import JiraClient
from bughunter.core.deps import get_jira_client, get_summarizer, get_ticket_pipeline
from bughunter.core.errors import (
    AiCompletionError,
    TicketCreationError,
    status_for,
)
from bughunter.models.triage import TriageBody
from bughunter.services.triage import TriagePipeline

router = APIRouter(prefix="/api/bugsummary", tags=["triage"])


def _require_stack_trace(body: TriageBody) -> str:
    if not body.stack_trace or not body.stack_trace.strip():
        raise HTTPException(400, "stack_trace is required")
    return body.stack_trace


@router.post("")
async def summarize(
    body: TriageBody,
    pipeline: TriagePipeline = Depends(get_summarizer),
) -> Union[Dict[str, Any], str]:
    stack_trace = _require_stack_trace(body)

    try:
        result = await pipeline.summarize(stack_trace)
    except AiCompletionError as e:
        raise HTTPException(502, f"Error calling AI completion: {e}")

    if isinstance(result, str):
        return result
    return result.model_dump(mode="json")


@router.post("/issues/bug", status_code=201)
async def create_bug(
    body: TriageBody,
    response: Response,
    pipeline: TriagePipeline = Depends(get_ticket_pipeline),
    client: JiraClient = Depends(get_jira_client),
) -> Any:
    stack_trace = _require_stack_trace(body)

    try:
        result = await pipeline.create_ticket(stack_trace)
    except AiCompletionError as e:
        raise HTTPException(502, f"Error calling AI completion: {e}")
    except TicketCreationError as e:
        return JSONResponse(
            status_code=status_for(e),
            content={
                "error": str(e.cause),
                "raw_output": e.raw_output,
                "triage": e.triage.model_dump(mode="json") if e.triage is not None else None,
            },
        )

    response.headers["Location"] = f"/api/jira/issue/{result.key}"
    return {
        "key": result.key,
        "id": result.id,
        "self": result.self_link,
        "browse_url": client.browse_url(result.key),
    }
