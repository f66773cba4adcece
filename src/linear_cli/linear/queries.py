"""GraphQL documents sent to the Linear API."""

from __future__ import annotations

ISSUE_FIELDS_FRAGMENT = """
fragment IssueFields on Issue {
    id
    identifier
    title
    description
    priority
    state { id name color type }
    assignee { id name email }
    team { id key name }
    project { id name state }
    cycle { id name number startsAt endsAt }
    createdAt
    updatedAt
}
"""

LIST_ISSUES_QUERY = (
    """
query ListIssues($filter: IssueFilter, $first: Int, $after: String) {
    issues(filter: $filter, first: $first, after: $after) {
        nodes { ...IssueFields }
        pageInfo { hasNextPage endCursor }
    }
}
"""
    + ISSUE_FIELDS_FRAGMENT
)

GET_ISSUE_QUERY = (
    """
query GetIssue($id: String!) {
    issue(id: $id) { ...IssueFields }
}
"""
    + ISSUE_FIELDS_FRAGMENT
)

GET_ISSUE_REF_QUERY = """
query GetIssueRef($id: String!) {
    issue(id: $id) {
        id
        identifier
        title
        team { id key name }
    }
}
"""

CREATE_ISSUE_MUTATION = """
mutation CreateIssue($input: IssueCreateInput!) {
    issueCreate(input: $input) {
        success
        issue { id identifier title }
    }
}
"""

UPDATE_ISSUE_MUTATION = """
mutation UpdateIssue($id: String!, $input: IssueUpdateInput!) {
    issueUpdate(id: $id, input: $input) {
        success
        issue { id identifier title }
    }
}
"""

VIEWER_QUERY = """
query Viewer {
    viewer { id name email }
}
"""

USER_BY_EMAIL_QUERY = """
query UserByEmail($email: String!) {
    users(filter: { email: { eq: $email } }) {
        nodes { id name email }
    }
}
"""

TEAM_BY_KEY_QUERY = """
query TeamByKey($key: String!) {
    teams(filter: { key: { eqIgnoreCase: $key } }) {
        nodes { id key name }
    }
}
"""

PROJECT_BY_NAME_QUERY = """
query ProjectByName($name: String!) {
    projects(filter: { name: { eqIgnoreCase: $name } }) {
        nodes { id name state }
    }
}
"""

WORKFLOW_STATES_QUERY = """
query WorkflowStates($teamId: ID!) {
    workflowStates(filter: { team: { id: { eq: $teamId } } }) {
        nodes { id name color type }
    }
}
"""

LIST_TEAMS_QUERY = """
query ListTeams {
    teams {
        nodes { id key name }
    }
}
"""

LIST_PROJECTS_QUERY = """
query ListProjects($filter: ProjectFilter) {
    projects(filter: $filter) {
        nodes { id name state }
    }
}
"""

LIST_CYCLES_QUERY = """
query ListCycles($filter: CycleFilter) {
    cycles(filter: $filter) {
        nodes { id name number startsAt endsAt }
    }
}
"""

LIST_LABELS_QUERY = """
query ListLabels($filter: IssueLabelFilter) {
    issueLabels(filter: $filter) {
        nodes { id name color description }
    }
}
"""

LIST_COMMENTS_QUERY = """
query ListComments($issueId: String!) {
    issue(id: $issueId) {
        comments {
            nodes {
                id
                body
                createdAt
                user { id name }
            }
        }
    }
}
"""

CREATE_COMMENT_MUTATION = """
mutation CreateComment($issueId: String!, $body: String!) {
    commentCreate(input: { issueId: $issueId, body: $body }) {
        success
        comment { id body createdAt }
    }
}
"""

LIST_ATTACHMENTS_QUERY = """
query ListAttachments($issueId: String!) {
    issue(id: $issueId) {
        attachments {
            nodes { id title url subtitle createdAt }
        }
    }
}
"""

ATTACH_URL_MUTATION = """
mutation AttachmentLinkURL($issueId: String!, $url: String!, $title: String) {
    attachmentLinkURL(issueId: $issueId, url: $url, title: $title) {
        success
        attachment { id title url subtitle createdAt }
    }
}
"""

FILE_UPLOAD_MUTATION = """
mutation FileUpload($filename: String!, $contentType: String!, $size: Int!) {
    fileUpload(filename: $filename, contentType: $contentType, size: $size) {
        success
        uploadFile {
            uploadUrl
            assetUrl
            headers { key value }
        }
    }
}
"""

CREATE_ATTACHMENT_MUTATION = """
mutation AttachmentCreate($issueId: String!, $url: String!, $title: String!) {
    attachmentCreate(input: { issueId: $issueId, url: $url, title: $title }) {
        success
        attachment { id title url subtitle createdAt }
    }
}
"""

ISSUE_RELATIONS_QUERY = """
query IssueRelations($id: String!) {
    issue(id: $id) {
        id
        identifier
        parent { id identifier title }
        children { nodes { id identifier title } }
        relations {
            nodes {
                id
                type
                issue { id identifier title }
                relatedIssue { id identifier title }
            }
        }
        inverseRelations {
            nodes {
                id
                type
                issue { id identifier title }
                relatedIssue { id identifier title }
            }
        }
    }
}
"""

CREATE_RELATION_MUTATION = """
mutation CreateIssueRelation($input: IssueRelationCreateInput!) {
    issueRelationCreate(input: $input) {
        success
    }
}
"""

DELETE_RELATION_MUTATION = """
mutation DeleteIssueRelation($id: String!) {
    issueRelationDelete(id: $id) {
        success
    }
}
"""
