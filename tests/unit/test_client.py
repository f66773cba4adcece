"""Unit tests for the Linear GraphQL client (mocked HTTP)."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from linear_cli.cache import EntityKind, FetchedEntity
from linear_cli.errors import (
    NotFoundError,
    RemoteRejectedError,
    RemoteUnavailableError,
    ValidationError,
)
from linear_cli.linear.client import LinearClient
from linear_cli.linear.models import (
    IssueCreate,
    IssueRelationType,
    IssueUpdate,
    Priority,
    UploadHeader,
    UploadTarget,
)


def _response(status: int, payload: Any = None, *, text: str | None = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.encoding = "utf-8"
    resp._content = (text if text is not None else json.dumps(payload)).encode("utf-8")
    return resp


def _issue_node(n: int) -> dict[str, Any]:
    return {
        "id": f"issue_{n}",
        "identifier": f"ENG-{n}",
        "title": f"Issue {n}",
        "priority": 2,
        "state": {"id": "s1", "name": "Todo", "color": "#aaaaaa", "type": "unstarted"},
        "assignee": None,
        "team": {"id": "team_abc123", "key": "ENG", "name": "Engineering"},
        "createdAt": "2025-01-01T00:00:00.000Z",
        "updatedAt": "2025-01-02T00:00:00.000Z",
    }


def _page(numbers: range, *, has_next: bool, cursor: str | None) -> dict[str, Any]:
    return {
        "data": {
            "issues": {
                "nodes": [_issue_node(n) for n in numbers],
                "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
            }
        }
    }


@pytest.fixture
def session() -> requests.Session:
    session = requests.Session()
    session.post = Mock()  # type: ignore[method-assign]
    return session


@pytest.fixture
def upload_session() -> requests.Session:
    session = requests.Session()
    session.put = Mock(return_value=_response(200, text=""))  # type: ignore[method-assign]
    return session


@pytest.fixture
def api(session: requests.Session, upload_session: requests.Session) -> LinearClient:
    return LinearClient(
        api_key="lin_api_test",
        api_url="https://linear.test/graphql",
        timeout=12.5,
        session=session,
        upload_session=upload_session,
    )


def _sent(session: requests.Session, call: int = -1) -> dict[str, Any]:
    return session.post.call_args_list[call].kwargs["json"]  # type: ignore[attr-defined]


def test_requests_carry_key_and_timeout(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, {"data": {"viewer": {"id": "u1", "name": "Me"}}})

    viewer = api.get_viewer()

    assert viewer.id == "u1"
    assert session.headers["Authorization"] == "lin_api_test"
    args, kwargs = session.post.call_args
    assert args == ("https://linear.test/graphql",)
    assert kwargs["timeout"] == 12.5


def test_missing_api_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        LinearClient(api_key="")


@pytest.mark.parametrize(
    "failure", [requests.Timeout("slow"), requests.ConnectionError("refused")]
)
def test_transport_failures_are_unavailable(
    api: LinearClient, session: requests.Session, failure: Exception
) -> None:
    session.post.side_effect = failure

    with pytest.raises(RemoteUnavailableError) as exc:
        api.get_viewer()

    assert exc.value.exit_code == 5


def test_server_errors_are_unavailable(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(503, text="Service Unavailable")

    with pytest.raises(RemoteUnavailableError, match="503"):
        api.get_viewer()


def test_client_errors_are_rejected_with_server_message(
    api: LinearClient, session: requests.Session
) -> None:
    session.post.return_value = _response(
        400, {"errors": [{"message": "Argument Validation Error"}]}
    )

    with pytest.raises(RemoteRejectedError) as exc:
        api.get_viewer()

    assert exc.value.status == 400
    assert "Argument Validation Error" in exc.value.message
    assert exc.value.exit_code == 4


def test_non_json_client_error_uses_body_text(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(401, text="Authentication required")

    with pytest.raises(RemoteRejectedError, match="Authentication required"):
        api.get_viewer()


def test_graphql_errors_are_rejected(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(
        200, {"data": None, "errors": [{"message": "Invalid input"}, {"message": "Other"}]}
    )

    with pytest.raises(RemoteRejectedError, match="GraphQL errors: Invalid input, Other"):
        api.get_viewer()


def test_entity_not_found_errors_map_to_not_found(
    api: LinearClient, session: requests.Session
) -> None:
    session.post.return_value = _response(
        200, {"data": None, "errors": [{"message": "Entity not found: Issue"}]}
    )

    with pytest.raises(NotFoundError):
        api.get_issue("ENG-999")


def test_missing_data_is_rejected(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, {})

    with pytest.raises(RemoteRejectedError, match="Empty response"):
        api.get_viewer()


def test_non_json_success_is_unavailable(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, text="<html>proxy</html>")

    with pytest.raises(RemoteUnavailableError):
        api.get_viewer()


def test_fetch_team_returns_id_and_canonical_key(
    api: LinearClient, session: requests.Session
) -> None:
    session.post.return_value = _response(
        200, {"data": {"teams": {"nodes": [{"id": "team_abc123", "key": "ENG"}]}}}
    )

    fetched = api.fetch_entity(EntityKind.TEAM, "eng")

    assert fetched == FetchedEntity(identifier="team_abc123", name="ENG")
    assert _sent(session)["variables"] == {"key": "eng"}


def test_fetch_project_returns_id_and_name(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(
        200, {"data": {"projects": {"nodes": [{"id": "proj_1", "name": "Mobile App"}]}}}
    )

    assert api.fetch_entity(EntityKind.PROJECT, "mobile app") == FetchedEntity(
        identifier="proj_1", name="Mobile App"
    )


@pytest.mark.parametrize("kind", [EntityKind.TEAM, EntityKind.PROJECT])
def test_fetch_unknown_name_is_not_found(
    api: LinearClient, session: requests.Session, kind: EntityKind
) -> None:
    session.post.return_value = _response(
        200, {"data": {"teams": {"nodes": []}, "projects": {"nodes": []}}}
    )

    with pytest.raises(NotFoundError):
        api.fetch_entity(kind, "NOPE")


def test_list_issues_fetches_a_single_page_by_default(
    api: LinearClient, session: requests.Session
) -> None:
    session.post.return_value = _response(200, _page(range(1, 6), has_next=True, cursor="c1"))

    issues = api.list_issues(issue_filter={"team": {"id": {"eq": "t"}}}, limit=3)

    assert [i.identifier for i in issues] == ["ENG-1", "ENG-2", "ENG-3"]
    assert session.post.call_count == 1
    assert _sent(session)["variables"] == {"filter": {"team": {"id": {"eq": "t"}}}, "first": 3}


def test_list_issues_caps_page_size(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, _page(range(0), has_next=False, cursor=None))

    api.list_issues(issue_filter={}, limit=1000)

    assert _sent(session)["variables"]["first"] == 250


def test_list_issues_follows_cursors_for_all_pages(
    api: LinearClient, session: requests.Session
) -> None:
    session.post.side_effect = [
        _response(200, _page(range(1, 3), has_next=True, cursor="c1")),
        _response(200, _page(range(3, 5), has_next=True, cursor="c2")),
        _response(200, _page(range(5, 6), has_next=False, cursor="c3")),
    ]

    issues = api.list_issues(issue_filter={}, limit=1, all_pages=True)

    assert [i.identifier for i in issues] == ["ENG-1", "ENG-2", "ENG-3", "ENG-4", "ENG-5"]
    assert [_sent(session, n)["variables"].get("after") for n in range(3)] == [None, "c1", "c2"]
    assert all(_sent(session, n)["variables"]["first"] == 100 for n in range(3))


def test_list_issues_rejects_non_positive_limit(
    api: LinearClient, session: requests.Session
) -> None:
    with pytest.raises(ValidationError):
        api.list_issues(issue_filter={}, limit=0)

    session.post.assert_not_called()


def test_missing_issue_is_not_found(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, {"data": {"issue": None}})

    with pytest.raises(NotFoundError, match="ENG-404"):
        api.get_issue_ref("ENG-404")


def test_create_issue_sends_only_given_fields(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(
        200,
        {
            "data": {
                "issueCreate": {
                    "success": True,
                    "issue": {"id": "issue_42", "identifier": "ENG-42", "title": "Fix login"},
                }
            }
        },
    )

    created = api.create_issue(
        IssueCreate(title="Fix login", team_id="team_abc123", priority=Priority.HIGH)
    )

    assert created.identifier == "ENG-42"
    assert _sent(session)["variables"] == {
        "input": {"title": "Fix login", "teamId": "team_abc123", "priority": 2}
    }


def test_unsuccessful_create_is_rejected(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, {"data": {"issueCreate": {"success": False}}})

    with pytest.raises(RemoteRejectedError):
        api.create_issue(IssueCreate(title="x", team_id="t"))


def test_update_payload_omits_unset_fields(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(
        200,
        {
            "data": {
                "issueUpdate": {
                    "success": True,
                    "issue": {"id": "issue_1", "identifier": "ENG-1", "title": "T"},
                }
            }
        },
    )

    api.update_issue("issue_1", IssueUpdate(state_id="state_done"))
    api.update_issue("issue_1", IssueUpdate(parent_id=None))

    assert _sent(session, 0)["variables"] == {"id": "issue_1", "input": {"stateId": "state_done"}}
    assert _sent(session, 1)["variables"] == {"id": "issue_1", "input": {"parentId": None}}


def test_list_projects_filters_by_team(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(
        200, {"data": {"projects": {"nodes": [{"id": "p1", "name": "Web", "state": "started"}]}}}
    )

    projects = api.list_projects(team_id="team_abc123")

    assert projects[0].name == "Web"
    assert _sent(session)["variables"] == {
        "filter": {"accessibleTeams": {"id": {"eq": "team_abc123"}}}
    }


def test_list_comments_of_missing_issue(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, {"data": {"issue": None}})

    with pytest.raises(NotFoundError):
        api.list_comments("ENG-1")


def test_put_file_uses_signed_headers_without_api_key(
    api: LinearClient, upload_session: requests.Session
) -> None:
    target = UploadTarget(
        upload_url="https://storage.test/put",
        asset_url="https://assets.test/file.png",
        headers=[UploadHeader(key="x-goog-meta", value="1")],
    )

    api.put_file(target, data=b"png", content_type="image/png")

    args, kwargs = upload_session.put.call_args
    assert args == ("https://storage.test/put",)
    assert kwargs["data"] == b"png"
    assert kwargs["headers"] == {"Content-Type": "image/png", "x-goog-meta": "1"}
    assert "Authorization" not in upload_session.headers


@pytest.mark.parametrize(
    ("status", "error"), [(403, RemoteRejectedError), (502, RemoteUnavailableError)]
)
def test_put_file_failures(
    api: LinearClient, upload_session: requests.Session, status: int, error: type[Exception]
) -> None:
    upload_session.put.return_value = _response(status, text="nope")
    target = UploadTarget(upload_url="https://storage.test/put", asset_url="https://a.test/f")

    with pytest.raises(error):
        api.put_file(target, data=b"x", content_type="text/plain")


@pytest.mark.parametrize(
    ("authorized", "headers"), [(True, {"Authorization": "lin_api_test"}), (False, {})]
)
def test_download_sends_api_key_only_when_asked(
    api: LinearClient,
    upload_session: requests.Session,
    authorized: bool,
    headers: dict[str, str],
) -> None:
    download = Mock(return_value=_response(200, text="png-bytes"))
    upload_session.get = download  # type: ignore[method-assign]

    assert api.download("https://uploads.linear.app/a.png", authorized=authorized) == b"png-bytes"

    assert download.call_args.kwargs["headers"] == headers


@pytest.mark.parametrize(
    ("status", "error"), [(404, RemoteRejectedError), (503, RemoteUnavailableError)]
)
def test_download_failures(
    api: LinearClient, upload_session: requests.Session, status: int, error: type[Exception]
) -> None:
    download = Mock(return_value=_response(status, text="nope"))
    upload_session.get = download  # type: ignore[method-assign]

    with pytest.raises(error):
        api.download("https://example.com/a.png")


def test_get_relations_merges_both_directions(
    api: LinearClient, session: requests.Session
) -> None:
    ref1 = {"id": "i1", "identifier": "ENG-1", "title": "One"}
    ref2 = {"id": "i2", "identifier": "ENG-2", "title": "Two"}
    ref3 = {"id": "i3", "identifier": "ENG-3", "title": "Three"}
    session.post.return_value = _response(
        200,
        {
            "data": {
                "issue": {
                    "id": "i1",
                    "identifier": "ENG-1",
                    "parent": None,
                    "children": {"nodes": [ref3]},
                    "relations": {
                        "nodes": [
                            {"id": "r1", "type": "blocks", "issue": ref1, "relatedIssue": ref2}
                        ]
                    },
                    "inverseRelations": {
                        "nodes": [
                            {"id": "r2", "type": "related", "issue": ref3, "relatedIssue": ref1}
                        ]
                    },
                }
            }
        },
    )

    relations = api.get_relations("ENG-1")

    assert [r.id for r in relations.relations] == ["r1", "r2"]
    assert relations.relations[0].relation_type is IssueRelationType.BLOCKS
    assert [c.identifier for c in relations.children] == ["ENG-3"]


def test_create_relation_payload(api: LinearClient, session: requests.Session) -> None:
    session.post.return_value = _response(200, {"data": {"issueRelationCreate": {"success": True}}})

    api.create_relation(
        issue_id="i1", related_issue_id="i2", relation_type=IssueRelationType.DUPLICATE
    )

    assert _sent(session)["variables"] == {
        "input": {"issueId": "i1", "relatedIssueId": "i2", "type": "duplicate"}
    }
