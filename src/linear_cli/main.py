"""CLI entrypoint: `linear <command> ...`."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path

import shtab

from linear_cli import __version__
from linear_cli.cache import CacheStore, ResolutionCache
from linear_cli.commands import (
    CommandContext,
    attachments,
    catalog,
    comments,
    images,
    issues,
    relations,
)
from linear_cli.commands.init import run_init
from linear_cli.config import LinearSettings, load_settings
from linear_cli.errors import LinearError
from linear_cli.linear.client import LinearClient
from linear_cli.linear.models import IssueRelationType
from linear_cli.logging import configure_logging
from linear_cli.output import OutputFormatter

logger = logging.getLogger(__name__)

COMPLETION_SHELLS = ("bash", "zsh", "tcsh")


def _common_options() -> argparse.ArgumentParser:
    # SUPPRESS keeps a subcommand from resetting a flag given before it.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--json",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Print machine-readable JSON instead of tables",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Debug logging and full error causes on stderr",
    )
    return common


def _add_team_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--team", default=None, help="Team key (e.g. ENG); defaults to default_team"
    )


def _add_list_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--mine", action="store_true", help="Show only issues assigned to me")
    _add_team_option(parser)
    parser.add_argument("--status", default=None, help="Filter by status name")
    parser.add_argument("--project", default=None, help="Filter by project name")
    parser.add_argument("--label", default=None, help="Filter by label name")
    parser.add_argument("--cycle", default=None, help="Filter by cycle name")
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=issues.DEFAULT_LIMIT,
        help="Maximum number of issues to show",
    )
    parser.add_argument(
        "--all",
        dest="all_pages",
        action="store_true",
        help="Fetch every page of results (ignores --limit)",
    )
    parser.set_defaults(handler=_handle_list_issues)


def _handle_list_issues(ctx: CommandContext, args: argparse.Namespace) -> object:
    return issues.list_issues(
        ctx,
        mine=args.mine,
        team=args.team,
        status=args.status,
        project=args.project,
        label=args.label,
        cycle=args.cycle,
        limit=args.limit,
        all_pages=args.all_pages,
    )


def _build_issue_parser(
    subparsers: argparse._SubParsersAction, common: argparse.ArgumentParser
) -> None:
    issue = subparsers.add_parser("issue", help="Manage issues", parents=[common])
    actions = issue.add_subparsers(dest="action", required=True)

    _add_list_options(actions.add_parser("list", help="List issues", parents=[common]))

    show = actions.add_parser("show", help="Show issue details", parents=[common])
    show.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    show.set_defaults(handler=lambda ctx, a: issues.show_issue(ctx, a.id))

    create = actions.add_parser("create", help="Create a new issue", parents=[common])
    create.add_argument("-t", "--title", required=True, help="Issue title")
    create.add_argument("-d", "--description", default=None, help="Issue description")
    _add_team_option(create)
    create.add_argument("--project", default=None, help="Project name")
    create.add_argument(
        "--priority",
        type=int,
        default=None,
        help="Priority (0=none, 1=urgent, 2=high, 3=medium, 4=low)",
    )
    create.set_defaults(
        handler=lambda ctx, a: issues.create_issue(
            ctx,
            title=a.title,
            description=a.description,
            team=a.team,
            project=a.project,
            priority=a.priority,
        )
    )

    update = actions.add_parser("update", help="Update an existing issue", parents=[common])
    update.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    update.add_argument("--title", default=None, help="New title")
    update.add_argument("--description", default=None, help="New description")
    update.add_argument("--status", default=None, help="New status name")
    update.add_argument("--priority", type=int, default=None, help="New priority (0-4)")
    update.add_argument("--assignee", default=None, help='Assignee: "me", an email or a user id')
    update.set_defaults(
        handler=lambda ctx, a: issues.update_issue(
            ctx,
            a.id,
            title=a.title,
            description=a.description,
            status=a.status,
            priority=a.priority,
            assignee=a.assignee,
        )
    )

    close = actions.add_parser("close", help="Move an issue to a completed state", parents=[common])
    close.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    close.set_defaults(handler=lambda ctx, a: issues.close_issue(ctx, a.id))

    list_comments = actions.add_parser("comments", help="List comments", parents=[common])
    list_comments.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    list_comments.set_defaults(handler=lambda ctx, a: comments.list_comments(ctx, a.id))

    comment = actions.add_parser("comment", help="Add a comment", parents=[common])
    comment.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    comment.add_argument("body", help="Comment text (markdown)")
    comment.set_defaults(handler=lambda ctx, a: comments.add_comment(ctx, a.id, a.body))

    list_attachments = actions.add_parser(
        "attachments", help="List attachments", parents=[common]
    )
    list_attachments.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    list_attachments.set_defaults(handler=lambda ctx, a: attachments.list_attachments(ctx, a.id))

    attach = actions.add_parser("attach", help="Attach a URL", parents=[common])
    attach.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    attach.add_argument("url", help="URL to attach")
    attach.add_argument(
        "-t", "--title", default=None, help="Attachment title (defaults to the URL)"
    )
    attach.set_defaults(
        handler=lambda ctx, a: attachments.attach_url(ctx, a.id, a.url, title=a.title)
    )

    upload = actions.add_parser("upload", help="Upload a file as an attachment", parents=[common])
    upload.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    upload.add_argument("path", type=Path, help="File to upload")
    upload.add_argument(
        "-t", "--title", default=None, help="Attachment title (defaults to the file name)"
    )
    upload.set_defaults(
        handler=lambda ctx, a: attachments.upload_file(ctx, a.id, a.path, title=a.title)
    )

    images_parser = actions.add_parser(
        "images", help="Images embedded in the description", parents=[common]
    )
    image_actions = images_parser.add_subparsers(dest="image_action", required=True)
    download = image_actions.add_parser(
        "download", help="Download images from the description", parents=[common]
    )
    download.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    download.add_argument(
        "-o", "--output", type=Path, default=Path("."), help="Output directory (default: .)"
    )
    download.add_argument(
        "-i", "--index", type=int, default=None, help="Only download image N (1-based)"
    )
    download.set_defaults(
        handler=lambda ctx, a: images.download_images(
            ctx, a.id, output_dir=a.output, index=a.index
        )
    )

    list_relations = actions.add_parser("relations", help="List relations", parents=[common])
    list_relations.add_argument("id", help="Issue identifier (e.g. ENG-123)")
    list_relations.set_defaults(handler=lambda ctx, a: relations.list_relations(ctx, a.id))

    relate = actions.add_parser("relate", help="Relate two issues", parents=[common])
    relate.add_argument("source", help="Source issue (e.g. ENG-1)")
    relate.add_argument(
        "relation",
        choices=[t.value for t in IssueRelationType],
        help="Relation type",
    )
    relate.add_argument("target", help="Target issue (e.g. ENG-2)")
    relate.set_defaults(
        handler=lambda ctx, a: relations.relate(
            ctx, a.source, IssueRelationType(a.relation), a.target
        )
    )

    unrelate = actions.add_parser("unrelate", help="Remove a relation", parents=[common])
    unrelate.add_argument("source", help="Source issue (e.g. ENG-1)")
    unrelate.add_argument("target", help="Target issue (e.g. ENG-2)")
    unrelate.set_defaults(handler=lambda ctx, a: relations.unrelate(ctx, a.source, a.target))

    parent = actions.add_parser("parent", help="Set the parent issue", parents=[common])
    parent.add_argument("id", help="Child issue (e.g. ENG-2)")
    parent.add_argument("parent_id", help="Parent issue (e.g. ENG-1)")
    parent.set_defaults(handler=lambda ctx, a: relations.set_parent(ctx, a.id, a.parent_id))

    unparent = actions.add_parser("unparent", help="Remove the parent issue", parents=[common])
    unparent.add_argument("id", help="Issue identifier (e.g. ENG-2)")
    unparent.set_defaults(handler=lambda ctx, a: relations.remove_parent(ctx, a.id))


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="linear",
        description="A CLI for Linear issue tracking",
        parents=[common],
    )
    parser.add_argument("--version", action="version", version=f"linear-cli {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    _add_list_options(
        subparsers.add_parser(
            "issues", help="List issues (alias for 'issue list')", parents=[common]
        )
    )
    _build_issue_parser(subparsers, common)

    teams = subparsers.add_parser("teams", help="List teams", parents=[common])
    teams.set_defaults(handler=lambda ctx, a: catalog.list_teams(ctx))

    projects = subparsers.add_parser("projects", help="List projects", parents=[common])
    _add_team_option(projects)
    projects.set_defaults(handler=lambda ctx, a: catalog.list_projects(ctx, team=a.team))

    cycles = subparsers.add_parser("cycles", help="List cycles", parents=[common])
    _add_team_option(cycles)
    cycles.set_defaults(handler=lambda ctx, a: catalog.list_cycles(ctx, team=a.team))

    labels = subparsers.add_parser("labels", help="List labels", parents=[common])
    _add_team_option(labels)
    labels.set_defaults(handler=lambda ctx, a: catalog.list_labels(ctx, team=a.team))

    completions = subparsers.add_parser(
        "completions", help="Print a shell completion script", parents=[common]
    )
    completions.add_argument("shell", choices=COMPLETION_SHELLS, help="Target shell")

    subparsers.add_parser("init", help="Create the config file interactively", parents=[common])

    return parser


def build_context(settings: LinearSettings, output: OutputFormatter) -> CommandContext:
    client = LinearClient(
        api_key=settings.require_api_key(),
        api_url=settings.api_url,
        timeout=settings.timeout,
    )
    resolver = ResolutionCache(
        store=CacheStore(settings.cache_file),
        fetcher=client,
        ttl=timedelta(seconds=settings.cache_ttl_seconds),
    )
    return CommandContext(client=client, resolver=resolver, settings=settings, output=output)


def _print_causes(error: BaseException) -> None:
    cause = error.__cause__ or error.__context__
    while cause is not None:
        print(f"Caused by: {cause}", file=sys.stderr)
        cause = cause.__cause__ or cause.__context__


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    json_output = getattr(args, "json", False)
    verbose = getattr(args, "verbose", False)
    output = OutputFormatter(json_output=json_output)

    if args.command == "completions":
        sys.stdout.write(shtab.complete(parser, shell=args.shell))
        return 0

    try:
        settings = load_settings()
        configure_logging("DEBUG" if verbose else settings.log_level)

        if args.command == "init":
            run_init(settings.config_file, output=output)
            return 0

        ctx = build_context(settings, output)
        try:
            args.handler(ctx, args)
        finally:
            ctx.client.close()
        return 0

    except LinearError as e:
        logger.debug("Command failed", extra={"kind": e.kind}, exc_info=verbose)
        output.error(e)
        if verbose:
            _print_causes(e)
        return e.exit_code

    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130

    except Exception as e:
        logger.exception("Command failed")
        output.error(e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
