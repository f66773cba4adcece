"""Typed records exchanged with the Linear GraphQL API.

Field names are snake_case in Python and camelCase on the wire; dumping with
`by_alias=True` reproduces the API's shape.
"""

from __future__ import annotations

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from linear_cli.errors import ValidationError


class LinearModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Priority(IntEnum):
    """Issue priority as stored by Linear (0 means no priority)."""

    NONE = 0
    URGENT = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: int) -> Priority:
        """Validate user input; anything outside 0-4 is rejected."""

        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                f"Invalid priority {value}: expected 0=None, 1=Urgent, 2=High, 3=Medium, 4=Low"
            ) from None


def priority_label(value: int) -> str:
    """Label for a priority read from the API; unknown values render as `P<n>`."""

    try:
        return Priority(value).label
    except ValueError:
        return f"P{value}"


class Team(LinearModel):
    id: str
    key: str
    name: str = ""


class Project(LinearModel):
    id: str
    name: str
    state: str | None = None


class User(LinearModel):
    id: str
    name: str
    email: str | None = None


class WorkflowState(LinearModel):
    id: str
    name: str
    color: str | None = None
    type: str | None = None


class Cycle(LinearModel):
    id: str
    name: str | None = None
    number: int
    starts_at: str
    ends_at: str

    @property
    def display_name(self) -> str:
        return self.name or f"Cycle {self.number}"


class Label(LinearModel):
    id: str
    name: str
    color: str | None = None
    description: str | None = None


class Issue(LinearModel):
    id: str
    identifier: str
    title: str
    description: str | None = None
    priority: int = 0
    state: WorkflowState | None = None
    assignee: User | None = None
    team: Team
    project: Project | None = None
    cycle: Cycle | None = None
    created_at: str
    updated_at: str


class IssueRef(LinearModel):
    """Minimal issue reference: enough to address and route an issue."""

    id: str
    identifier: str
    title: str = ""
    team: Team | None = None


class CreatedIssue(LinearModel):
    id: str
    identifier: str
    title: str


class Comment(LinearModel):
    id: str
    body: str
    created_at: str
    user: User | None = None


class Attachment(LinearModel):
    id: str
    title: str
    url: str | None = None
    subtitle: str | None = None
    created_at: str


class UploadHeader(LinearModel):
    key: str
    value: str


class UploadTarget(LinearModel):
    """Signed upload destination returned by the `fileUpload` mutation."""

    upload_url: str
    asset_url: str
    headers: list[UploadHeader] = Field(default_factory=list)


class IssueRelationType(str, Enum):
    BLOCKS = "blocks"
    DUPLICATE = "duplicate"
    RELATED = "related"

    @property
    def inverse_label(self) -> str:
        """Label for the relation seen from the related issue's side."""

        return {
            IssueRelationType.BLOCKS: "blocked by",
            IssueRelationType.DUPLICATE: "duplicate of",
            IssueRelationType.RELATED: "related to",
        }[self]


class IssueRelation(LinearModel):
    id: str
    relation_type: IssueRelationType = Field(alias="type")
    issue: IssueRef
    related_issue: IssueRef


class IssueRelations(LinearModel):
    """An issue's parent, children and relations."""

    id: str
    identifier: str
    parent: IssueRef | None = None
    children: list[IssueRef] = Field(default_factory=list)
    relations: list[IssueRelation] = Field(default_factory=list)


class IssueCreate(LinearModel):
    title: str
    team_id: str
    description: str | None = None
    project_id: str | None = None
    priority: Priority | None = None

    def to_input(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class IssueUpdate(LinearModel):
    """Partial update: only fields that were explicitly set are sent.

    Presence is tracked by pydantic (`model_fields_set`), so an explicit
    `None` (e.g. clearing a parent) is serialized as `null` while untouched
    fields are omitted.
    """

    title: str | None = None
    description: str | None = None
    state_id: str | None = None
    priority: Priority | None = None
    assignee_id: str | None = None
    parent_id: str | None = None

    def to_input(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
