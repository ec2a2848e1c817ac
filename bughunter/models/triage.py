from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# Jira priority names used when a severity is turned into a ticket
SEVERITY_PRIORITY = {
    Severity.LOW: "Low",
    Severity.MEDIUM: "Medium",
    Severity.HIGH: "High",
    Severity.CRITICAL: "Highest",
}


class TriageSummary(BaseModel):
    title: str = Field(min_length=1)
    summary: str = ""
    severity: Severity = Severity.MEDIUM

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("summary", mode="before")
    @classmethod
    def _summary_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_case(cls, v: Any) -> Any:
        # unknown or missing severities are triaged as Medium
        name = v.strip().capitalize() if isinstance(v, str) else v
        if name in [s.value for s in Severity]:
            return name
        logger.warning("[TRIAGE] unknown severity %r, using Medium", v)
        return Severity.MEDIUM

    @property
    def priority(self) -> str:
        return SEVERITY_PRIORITY[self.severity]


class TriageBody(BaseModel):
    stack_trace: str = Field(default="", max_length=50_000)
