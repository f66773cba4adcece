"""Linear GraphQL API client.

Keeps HTTP and GraphQL details out of the command handlers: every method
returns typed records from `linear_cli.linear.models` and every failure is
mapped onto the `linear_cli.errors` taxonomy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from linear_cli.cache import EntityKind, FetchedEntity
from linear_cli.errors import (
    NotFoundError,
    RemoteRejectedError,
    RemoteUnavailableError,
    ValidationError,
)
from linear_cli.linear import queries
from linear_cli.linear.models import (
    Attachment,
    Comment,
    CreatedIssue,
    Cycle,
    Issue,
    IssueCreate,
    IssueRef,
    IssueRelations,
    IssueRelationType,
    IssueUpdate,
    Label,
    Project,
    Team,
    UploadTarget,
    User,
    WorkflowState,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.linear.app/graphql"
MAX_PAGE_SIZE = 250
ALL_PAGES_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class IssuePage:
    issues: list[Issue]
    has_next_page: bool
    end_cursor: str | None


def _error_messages(payload: object) -> list[str]:
    if not isinstance(payload, dict):
        return []
    errors = payload.get("errors")
    if not isinstance(errors, list):
        return []
    messages: list[str] = []
    for item in errors:
        if isinstance(item, dict):
            msg = item.get("message")
            if isinstance(msg, str) and msg.strip():
                messages.append(msg)
    return messages


def _nodes(data: dict[str, Any], field: str) -> list[Any]:
    connection = data.get(field)
    if not isinstance(connection, dict):
        return []
    nodes = connection.get("nodes")
    return nodes if isinstance(nodes, list) else []


class LinearClient:
    """Small wrapper around the Linear GraphQL endpoint for the operations the CLI needs."""

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        upload_session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Linear API key is required")

        self._api_key = api_key
        self._api_url = api_url
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                # Personal API keys are sent as-is (no "Bearer" prefix).
                "Authorization": api_key,
                "Content-Type": "application/json",
                "User-Agent": "linear-cli",
            }
        )
        # Storage URLs get no default Authorization; `download` adds it per request.
        self._upload_session = upload_session or requests.Session()

    # -- transport -----------------------------------------------------------------

    def _graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"query": query}
        if variables is not None:
            body["variables"] = variables

        try:
            resp = self._session.post(self._api_url, json=body, timeout=self._timeout)
        except requests.Timeout as e:
            raise RemoteUnavailableError(
                f"Linear API timed out after {self._timeout:g}s"
            ) from e
        except requests.RequestException as e:
            raise RemoteUnavailableError(f"Linear API request failed: {e}") from e

        if resp.status_code >= 500:
            raise RemoteUnavailableError(
                f"Linear API unavailable (status {resp.status_code})"
            )

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.status_code >= 400:
            messages = _error_messages(payload)
            message = "; ".join(messages) if messages else (resp.text or resp.reason or "")
            raise RemoteRejectedError(
                f"API error (status {resp.status_code}): {message}", status=resp.status_code
            )

        if not isinstance(payload, dict):
            raise RemoteUnavailableError("Linear API returned a response that is not JSON")

        messages = _error_messages(payload)
        if messages:
            if all(m.lower().startswith("entity not found") for m in messages):
                raise NotFoundError("; ".join(messages))
            raise RemoteRejectedError("GraphQL errors: " + ", ".join(messages))

        data = payload.get("data")
        if not isinstance(data, dict):
            raise RemoteRejectedError("Empty response from API")
        return data

    def close(self) -> None:
        self._session.close()
        self._upload_session.close()

    # -- name resolution -------------------------------------------------------

    def fetch_entity(self, kind: EntityKind, name: str) -> FetchedEntity:
        """Look up the backend identifier for a team key or project name."""

        if kind is EntityKind.TEAM:
            data = self._graphql(queries.TEAM_BY_KEY_QUERY, {"key": name})
            teams = [Team.model_validate(n) for n in _nodes(data, "teams")]
            if not teams:
                raise NotFoundError(f"Team not found: {name}")
            team = teams[0]
            logger.debug("Fetched team", extra={"team_key": team.key, "team_id": team.id})
            return FetchedEntity(identifier=team.id, name=team.key)

        if kind is EntityKind.PROJECT:
            data = self._graphql(queries.PROJECT_BY_NAME_QUERY, {"name": name})
            projects = [Project.model_validate(n) for n in _nodes(data, "projects")]
            if not projects:
                raise NotFoundError(f"Project not found: {name}")
            project = projects[0]
            logger.debug(
                "Fetched project", extra={"project_name": project.name, "project_id": project.id}
            )
            return FetchedEntity(identifier=project.id, name=project.name)

        raise ValueError(f"Unsupported entity kind: {kind}")

    def get_viewer(self) -> User:
        data = self._graphql(queries.VIEWER_QUERY)
        return User.model_validate(data.get("viewer"))

    def find_user_by_email(self, email: str) -> User:
        data = self._graphql(queries.USER_BY_EMAIL_QUERY, {"email": email})
        users = _nodes(data, "users")
        if not users:
            raise NotFoundError(f"User not found: {email}")
        return User.model_validate(users[0])

    def get_workflow_states(self, *, team_id: str) -> list[WorkflowState]:
        data = self._graphql(queries.WORKFLOW_STATES_QUERY, {"teamId": team_id})
        return [WorkflowState.model_validate(n) for n in _nodes(data, "workflowStates")]

    # -- issues ----------------------------------------------------------------

    def fetch_issue_page(
        self, *, issue_filter: dict[str, Any], first: int, after: str | None = None
    ) -> IssuePage:
        variables: dict[str, Any] = {"filter": issue_filter, "first": first}
        if after is not None:
            variables["after"] = after
        data = self._graphql(queries.LIST_ISSUES_QUERY, variables)
        connection = data.get("issues") or {}
        page_info = connection.get("pageInfo") or {}
        return IssuePage(
            issues=[Issue.model_validate(n) for n in connection.get("nodes") or []],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    def list_issues(
        self, *, issue_filter: dict[str, Any], limit: int, all_pages: bool = False
    ) -> list[Issue]:
        """Fetch issues page by page.

        Without `all_pages` a single page of at most `limit` issues is fetched.
        With it, pages are fetched in order until the server reports no further
        pages.
        """

        if limit <= 0:
            raise ValidationError("limit must be a positive integer")

        page_size = ALL_PAGES_PAGE_SIZE if all_pages else min(limit, MAX_PAGE_SIZE)
        issues: list[Issue] = []
        cursor: str | None = None
        while True:
            page = self.fetch_issue_page(issue_filter=issue_filter, first=page_size, after=cursor)
            issues.extend(page.issues)
            logger.debug(
                "Fetched issue page",
                extra={"count": len(page.issues), "has_next_page": page.has_next_page},
            )
            if not all_pages or not page.has_next_page or page.end_cursor is None:
                break
            cursor = page.end_cursor

        if not all_pages:
            return issues[:limit]
        return issues

    def get_issue(self, issue_id: str) -> Issue:
        data = self._graphql(queries.GET_ISSUE_QUERY, {"id": issue_id})
        raw = data.get("issue")
        if raw is None:
            raise NotFoundError(f"Issue not found: {issue_id}")
        return Issue.model_validate(raw)

    def get_issue_ref(self, issue_id: str) -> IssueRef:
        """Resolve a human identifier (e.g. ENG-123) to the issue's backend id and team."""

        data = self._graphql(queries.GET_ISSUE_REF_QUERY, {"id": issue_id})
        raw = data.get("issue")
        if raw is None:
            raise NotFoundError(f"Issue not found: {issue_id}")
        return IssueRef.model_validate(raw)

    def create_issue(self, issue: IssueCreate) -> CreatedIssue:
        data = self._graphql(queries.CREATE_ISSUE_MUTATION, {"input": issue.to_input()})
        result = data.get("issueCreate") or {}
        if not result.get("success") or result.get("issue") is None:
            raise RemoteRejectedError("Issue creation was not accepted by the server")
        created = CreatedIssue.model_validate(result["issue"])
        logger.info("Issue created", extra={"identifier": created.identifier})
        return created

    def update_issue(self, issue_id: str, update: IssueUpdate) -> CreatedIssue:
        payload = update.to_input()
        data = self._graphql(queries.UPDATE_ISSUE_MUTATION, {"id": issue_id, "input": payload})
        result = data.get("issueUpdate") or {}
        if not result.get("success") or result.get("issue") is None:
            raise RemoteRejectedError(f"Update of {issue_id} was not accepted by the server")
        updated = CreatedIssue.model_validate(result["issue"])
        logger.info(
            "Issue updated",
            extra={"identifier": updated.identifier, "fields": sorted(payload)},
        )
        return updated

    # -- catalog ---------------------------------------------------------------

    def list_teams(self) -> list[Team]:
        data = self._graphql(queries.LIST_TEAMS_QUERY)
        return [Team.model_validate(n) for n in _nodes(data, "teams")]

    def list_projects(self, *, team_id: str | None = None) -> list[Project]:
        variables = None
        if team_id is not None:
            variables = {"filter": {"accessibleTeams": {"id": {"eq": team_id}}}}
        data = self._graphql(queries.LIST_PROJECTS_QUERY, variables)
        return [Project.model_validate(n) for n in _nodes(data, "projects")]

    def list_cycles(self, *, team_id: str | None = None) -> list[Cycle]:
        variables = None
        if team_id is not None:
            variables = {"filter": {"team": {"id": {"eq": team_id}}}}
        data = self._graphql(queries.LIST_CYCLES_QUERY, variables)
        return [Cycle.model_validate(n) for n in _nodes(data, "cycles")]

    def list_labels(self, *, team_id: str | None = None) -> list[Label]:
        variables = None
        if team_id is not None:
            variables = {"filter": {"team": {"id": {"eq": team_id}}}}
        data = self._graphql(queries.LIST_LABELS_QUERY, variables)
        return [Label.model_validate(n) for n in _nodes(data, "issueLabels")]

    # -- comments & attachments ------------------------------------------------

    def _issue_subresource(self, query: str, issue_id: str, field: str) -> list[Any]:
        data = self._graphql(query, {"issueId": issue_id})
        issue = data.get("issue")
        if issue is None:
            raise NotFoundError(f"Issue not found: {issue_id}")
        return _nodes(issue, field)

    def list_comments(self, issue_id: str) -> list[Comment]:
        nodes = self._issue_subresource(queries.LIST_COMMENTS_QUERY, issue_id, "comments")
        return [Comment.model_validate(n) for n in nodes]

    def create_comment(self, issue_id: str, body: str) -> Comment:
        data = self._graphql(queries.CREATE_COMMENT_MUTATION, {"issueId": issue_id, "body": body})
        result = data.get("commentCreate") or {}
        if not result.get("success") or result.get("comment") is None:
            raise RemoteRejectedError(f"Comment on {issue_id} was not accepted by the server")
        return Comment.model_validate(result["comment"])

    def list_attachments(self, issue_id: str) -> list[Attachment]:
        nodes = self._issue_subresource(queries.LIST_ATTACHMENTS_QUERY, issue_id, "attachments")
        return [Attachment.model_validate(n) for n in nodes]

    def _attachment_result(self, data: dict[str, Any], field: str) -> Attachment:
        result = data.get(field) or {}
        if not result.get("success") or result.get("attachment") is None:
            raise RemoteRejectedError("Attachment was not accepted by the server")
        return Attachment.model_validate(result["attachment"])

    def attach_url(self, issue_id: str, *, url: str, title: str) -> Attachment:
        data = self._graphql(
            queries.ATTACH_URL_MUTATION, {"issueId": issue_id, "url": url, "title": title}
        )
        return self._attachment_result(data, "attachmentLinkURL")

    def request_upload(self, *, filename: str, content_type: str, size: int) -> UploadTarget:
        data = self._graphql(
            queries.FILE_UPLOAD_MUTATION,
            {"filename": filename, "contentType": content_type, "size": size},
        )
        result = data.get("fileUpload") or {}
        if result.get("uploadFile") is None:
            raise RemoteRejectedError(f"Upload of {filename} was not accepted by the server")
        return UploadTarget.model_validate(result["uploadFile"])

    def put_file(self, target: UploadTarget, *, data: bytes, content_type: str) -> None:
        headers = {"Content-Type": content_type}
        headers.update({h.key: h.value for h in target.headers})
        try:
            resp = self._upload_session.put(
                target.upload_url, data=data, headers=headers, timeout=self._timeout
            )
        except requests.Timeout as e:
            raise RemoteUnavailableError(f"File upload timed out after {self._timeout:g}s") from e
        except requests.RequestException as e:
            raise RemoteUnavailableError(f"File upload failed: {e}") from e

        if resp.status_code >= 500:
            raise RemoteUnavailableError(f"File upload failed (status {resp.status_code})")
        if resp.status_code >= 400:
            raise RemoteRejectedError(
                f"File upload failed (status {resp.status_code}): {resp.text}",
                status=resp.status_code,
            )

    def download(self, url: str, *, authorized: bool = False) -> bytes:
        """GET a file. `authorized` sends the API key, for Linear-hosted uploads only."""

        headers = {"Authorization": self._api_key} if authorized else {}
        try:
            resp = self._upload_session.get(url, headers=headers, timeout=self._timeout)
        except requests.Timeout as e:
            raise RemoteUnavailableError(f"Download timed out after {self._timeout:g}s") from e
        except requests.RequestException as e:
            raise RemoteUnavailableError(f"Download failed: {e}") from e

        if resp.status_code >= 500:
            raise RemoteUnavailableError(f"Download failed (status {resp.status_code})")
        if resp.status_code >= 400:
            raise RemoteRejectedError(
                f"Download failed (status {resp.status_code})", status=resp.status_code
            )
        return resp.content

    def create_attachment(self, issue_id: str, *, url: str, title: str) -> Attachment:
        data = self._graphql(
            queries.CREATE_ATTACHMENT_MUTATION, {"issueId": issue_id, "url": url, "title": title}
        )
        return self._attachment_result(data, "attachmentCreate")

    # -- relations -------------------------------------------------------------

    def get_relations(self, issue_id: str) -> IssueRelations:
        data = self._graphql(queries.ISSUE_RELATIONS_QUERY, {"id": issue_id})
        raw = data.get("issue")
        if raw is None:
            raise NotFoundError(f"Issue not found: {issue_id}")
        return IssueRelations.model_validate(
            {
                "id": raw.get("id"),
                "identifier": raw.get("identifier"),
                "parent": raw.get("parent"),
                "children": _nodes(raw, "children"),
                "relations": _nodes(raw, "relations") + _nodes(raw, "inverseRelations"),
            }
        )

    def create_relation(
        self, *, issue_id: str, related_issue_id: str, relation_type: IssueRelationType
    ) -> None:
        variables = {
            "input": {
                "issueId": issue_id,
                "relatedIssueId": related_issue_id,
                "type": relation_type.value,
            }
        }
        data = self._graphql(queries.CREATE_RELATION_MUTATION, variables)
        if not (data.get("issueRelationCreate") or {}).get("success"):
            raise RemoteRejectedError("Relation was not accepted by the server")

    def delete_relation(self, relation_id: str) -> None:
        data = self._graphql(queries.DELETE_RELATION_MUTATION, {"id": relation_id})
        if not (data.get("issueRelationDelete") or {}).get("success"):
            raise RemoteRejectedError("Relation removal was not accepted by the server")
