from __future__ import annotations

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bughunter.core.errors import ValidationError


def _name_of(value: Any) -> Optional[str]:
    """Collapse one of Jira's heterogeneous user/option objects to a display string."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for k in ("name", "displayName", "value", "key", "accountId"):
            v = value.get(k)
            if isinstance(v, str) and v:
                return v
    return None


class IssueCreateRequest(BaseModel):
    """A validated create-issue request. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    project_key: str
    summary: str
    description: str = ""
    issue_type: str = "Bug"
    priority: Optional[str] = None
    assignee: Optional[str] = None
    labels: Optional[Tuple[str, ...]] = None

    @model_validator(mode="after")
    def _required_fields(self) -> "IssueCreateRequest":
        # project key is checked before summary
        if not self.project_key.strip():
            raise ValidationError("project_key", "ProjectKey required")
        if not self.summary.strip():
            raise ValidationError("summary", "Summary required")
        return self

    @classmethod
    def build(
        cls,
        *,
        project_key: Optional[str],
        summary: Optional[str],
        description: Optional[str] = None,
        issue_type: Optional[str] = None,
        priority: Optional[str] = None,
        assignee: Optional[str] = None,
        labels: Optional[List[str]] = None,
    ) -> "IssueCreateRequest":
        """Validate caller input and build the request.

        Raises ``ValidationError`` naming the first missing required field,
        project key first, then summary.
        """
        # de-duplicate labels, keep first-seen order
        clean_labels = tuple(dict.fromkeys(lbl.strip() for lbl in labels or [] if lbl and lbl.strip()))

        return cls(
            project_key=(project_key or "").strip(),
            summary=(summary or "").strip(),
            description=description or "",
            issue_type=(issue_type or "").strip() or "Bug",
            priority=(priority or "").strip() or None,
            assignee=(assignee or "").strip() or None,
            labels=clean_labels or None,
        )


class CreateIssueBody(BaseModel):
    """Inbound DTO of ``POST /api/jira/issue``."""

    model_config = ConfigDict(populate_by_name=True)

    project_key: str = Field(default="", alias="projectKey")
    summary: str = ""
    description: str = ""
    issue_type: str = Field(default="Bug", alias="issueType")
    priority: Optional[str] = None
    assignee: Optional[str] = None
    labels: Optional[List[str]] = None

    def to_request(self) -> IssueCreateRequest:
        return IssueCreateRequest.build(
            project_key=self.project_key,
            summary=self.summary,
            description=self.description,
            issue_type=self.issue_type,
            priority=self.priority,
            assignee=self.assignee,
            labels=self.labels,
        )


class IssueCreateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    key: str
    self_link: str = Field(default="", alias="self")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("key")
    @classmethod
    def _key_required(cls, v: str) -> str:
        if not v:
            raise ValueError("issue key missing from response")
        return v


class IssueFields(BaseModel):
    """Best-effort typed view of the fields requested by search.

    ``description`` stays opaque (Atlassian Document Format, or a plain string
    on older servers); the object-shaped fields are reduced to their name.
    """

    model_config = ConfigDict(populate_by_name=True)

    summary: Optional[str] = None
    description: Any = None
    issue_type: Optional[str] = Field(default=None, alias="issuetype")
    priority: Optional[str] = None
    assignee: Optional[str] = None
    labels: List[str] = Field(default_factory=list)

    @field_validator("issue_type", "priority", "assignee", mode="before")
    @classmethod
    def _collapse_object(cls, v: Any) -> Optional[str]:
        return _name_of(v)

    @field_validator("labels", mode="before")
    @classmethod
    def _labels_list(cls, v: Any) -> List[str]:
        if not v:
            return []
        return [str(x) for x in v]


class Issue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    key: str
    self_link: str = Field(default="", alias="self")
    fields: IssueFields = Field(default_factory=IssueFields)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("fields", mode="before")
    @classmethod
    def _fields_default(cls, v: Any) -> Any:
        return v if v is not None else {}


class SearchPage(BaseModel):
    """One contiguous slice of a search result set, starting at ``start_at``."""

    model_config = ConfigDict(populate_by_name=True)

    start_at: int = Field(default=0, alias="startAt")
    max_results: int = Field(default=0, alias="maxResults")
    total: int = 0
    issues: List[Issue] = Field(default_factory=list)

    @field_validator("issues", mode="before")
    @classmethod
    def _issues_default(cls, v: Any) -> Any:
        return v if v is not None else []
