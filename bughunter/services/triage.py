"""Stack trace -> AI triage record -> optional Jira ticket."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Protocol, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from bughunter.core.errors import (
    TicketCreationError,
    TrackerError,
    ValidationError,
)
from bughunter.models.jira import IssueCreateRequest, IssueCreateResult
from bughunter.models.triage import TriageSummary

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a smart assistant that extracts a concise title, a brief summary, "
    "and a severity (Low/Medium/High/Critical) from an error stack trace. "
    "Respond with a JSON object only, with keys: title, summary, severity."
)

USER_PROMPT_TEMPLATE = "Stack trace:\n{stack_trace}\n\nReturn JSON only."

SUMMARY_MAX_LEN = 255
FALLBACK_TITLE = "Automated bug report"

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


class Completer(Protocol):
    async def complete(self, system: str, user: str) -> str: ...


class IssueCreator(Protocol):
    async def create_issue(self, req: IssueCreateRequest) -> IssueCreateResult: ...


def parse_triage(raw: str) -> Optional[TriageSummary]:
    """Best-effort decode of the model answer; None when it is not a usable record."""
    text = (raw or "").strip()
    m = _FENCE_RE.match(text)
    if m:
        text = m.group(1).strip()

    try:
        data: Any = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    data = {str(k).lower(): v for k, v in data.items()}
    try:
        return TriageSummary.model_validate(data)
    except PydanticValidationError:
        return None


def _truncate(text: str, limit: int = SUMMARY_MAX_LEN) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


class TriagePipeline:
    def __init__(
        self,
        completer: Completer,
        tracker: Optional[IssueCreator] = None,
        *,
        project_key: str = "",
        issue_type: str = "Bug",
        labels: Optional[List[str]] = None,
        assignee: Optional[str] = None,
    ):
        self.completer = completer
        self.tracker = tracker
        self.project_key = project_key
        self.issue_type = issue_type
        self.labels = list(labels) if labels else []
        self.assignee = assignee

    async def _complete(self, stack_trace: str) -> str:
        if not stack_trace or not stack_trace.strip():
            raise ValidationError("stack_trace", "stack_trace is required")
        return await self.completer.complete(
            SYSTEM_PROMPT, USER_PROMPT_TEMPLATE.format(stack_trace=stack_trace)
        )

    async def _triage(self, stack_trace: str) -> Tuple[str, Union[TriageSummary, str]]:
        raw = await self._complete(stack_trace)
        summary = parse_triage(raw)
        if summary is None:
            logger.warning("[TRIAGE] unstructured AI output (len=%d), returning raw text", len(raw))
            return raw, raw
        logger.info("[TRIAGE] %s severity=%s", summary.title, summary.severity.value)
        return raw, summary

    async def summarize(self, stack_trace: str) -> Union[TriageSummary, str]:
        """Ask the model for a triage record.

        Returns the raw model text unchanged when it cannot be decoded.
        AiCompletionError from the completer propagates.
        """
        _, triage = await self._triage(stack_trace)
        return triage

    def build_request(self, stack_trace: str, triage: Union[TriageSummary, str]) -> IssueCreateRequest:
        if isinstance(triage, TriageSummary):
            description = (
                f"{triage.summary}\n\nSeverity: {triage.severity.value}\n\n"
                f"Stack trace:\n{stack_trace}"
            )
            return IssueCreateRequest.build(
                project_key=self.project_key,
                summary=_truncate(triage.title),
                description=description,
                issue_type=self.issue_type,
                priority=triage.priority,
                assignee=self.assignee,
                labels=self.labels,
            )

        headline = _first_line(stack_trace)
        summary = f"{FALLBACK_TITLE}: {headline}" if headline else FALLBACK_TITLE
        return IssueCreateRequest.build(
            project_key=self.project_key,
            summary=_truncate(summary),
            description=triage if triage.strip() else stack_trace,
            issue_type=self.issue_type,
            priority=None,
            assignee=self.assignee,
            labels=self.labels,
        )

    async def create_ticket(self, stack_trace: str) -> IssueCreateResult:
        """Summarize ``stack_trace`` and file the result as a Jira issue.

        No retry: a validation or tracker failure is raised as
        TicketCreationError carrying the raw model output.
        """
        if self.tracker is None:
            raise RuntimeError("No issue tracker configured")
        raw, triage = await self._triage(stack_trace)

        try:
            req = self.build_request(stack_trace, triage)
            return await self.tracker.create_issue(req)
        except (ValidationError, TrackerError) as e:
            logger.warning("[TRIAGE] ticket creation failed: %s", e)
            parsed = triage if isinstance(triage, TriageSummary) else None
            raise TicketCreationError(e, raw, parsed) from e
