"""
DoneDone CLI - Command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- Pretty formatting of JSON responses for human output
- Raw response passthrough for piping/automation
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import Any

from donedone_cli.core.errors import CLIError, ValidationError
from donedone_cli.core.types import ActivityFilter, CustomActivityQuery, CustomFilterQuery, IssueFilter
from donedone_cli.sdk import ACTIVITY_VIEWS, ISSUE_VIEWS, IssueTracker

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: CLIError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def response_output(text: str) -> None:
    """Print a response body: pretty JSON on a TTY, verbatim otherwise."""
    if is_tty():
        try:
            json_output(json.loads(text), pretty=True)
            return
        except ValueError:
            pass
    print(text)


# =============================================================================
# Argument Helpers
# =============================================================================


def parse_date(value: str | None) -> date | None:
    """Parse a YYYY-MM-DD argument."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")


def parse_ids(value: str | None) -> list[int] | None:
    """Parse a comma-separated id list argument."""
    if value is None:
        return None
    try:
        return [int(v) for v in value.split(",") if v.strip()]
    except ValueError:
        raise ValidationError(f"Invalid id list '{value}', expected comma-separated integers")


def parse_tags(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [t.strip() for t in value.split(",") if t.strip()]


def run(func, *args: Any, **kwargs: Any) -> None:
    """Call an SDK method and print its response or error."""
    try:
        response_output(func(*args, **kwargs))
    except CLIError as e:
        error_output(e)


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_companies_list(client: IssueTracker, args: argparse.Namespace) -> None:
    """List companies."""
    run(client.companies.list)


def cmd_companies_get(client: IssueTracker, args: argparse.Namespace) -> None:
    """Get a company."""
    run(client.companies.get, args.company_id)


def cmd_companies_create(client: IssueTracker, args: argparse.Namespace) -> None:
    """Create a company."""
    run(client.companies.create, args.name)


def cmd_companies_update(client: IssueTracker, args: argparse.Namespace) -> None:
    """Rename a company."""
    run(client.companies.update, args.company_id, args.name)


def cmd_people_get(client: IssueTracker, args: argparse.Namespace) -> None:
    """Get a person."""
    run(client.people.get, args.user_id)


def cmd_projects_list(client: IssueTracker, args: argparse.Namespace) -> None:
    """List projects."""
    run(client.projects.list)


def cmd_projects_get(client: IssueTracker, args: argparse.Namespace) -> None:
    """Get a project."""
    run(client.projects.get, args.project_id)


def cmd_projects_people(client: IssueTracker, args: argparse.Namespace) -> None:
    """List people in a project."""
    run(client.projects.people, args.project_id)


def cmd_issues_get(client: IssueTracker, args: argparse.Namespace) -> None:
    """Get an issue."""
    run(client.issues.get, args.project_id, args.order_number)


def cmd_issues_create(client: IssueTracker, args: argparse.Namespace) -> None:
    """Create an issue."""
    try:
        due_date = parse_date(args.due_date)
        user_ids_to_cc = parse_ids(args.cc)
    except ValidationError as e:
        error_output(e)
        return
    run(
        client.issues.create,
        project_id=args.project_id,
        title=args.title,
        priority_level_id=args.priority,
        fixer_id=args.fixer,
        tester_id=args.tester,
        description=args.description,
        tags=parse_tags(args.tags),
        user_ids_to_cc=user_ids_to_cc,
        due_date=due_date,
        attachments=args.attach or None,
    )


def cmd_issues_delete(client: IssueTracker, args: argparse.Namespace) -> None:
    """Delete an issue."""
    run(client.issues.delete, args.project_id, args.order_number)


def cmd_issues_comment(client: IssueTracker, args: argparse.Namespace) -> None:
    """Comment on an issue."""
    run(client.issues.add_comment, args.project_id, args.order_number, args.comment, args.attach or None)


def cmd_issues_status(client: IssueTracker, args: argparse.Namespace) -> None:
    """Change issue status."""
    run(
        client.issues.update_status,
        args.project_id,
        args.order_number,
        args.comment,
        args.new_id,
        args.attach or None,
    )


def cmd_issues_fixer(client: IssueTracker, args: argparse.Namespace) -> None:
    """Reassign the fixer."""
    run(
        client.issues.update_fixer,
        args.project_id,
        args.order_number,
        args.comment,
        args.new_id,
        args.attach or None,
    )


def cmd_issues_tester(client: IssueTracker, args: argparse.Namespace) -> None:
    """Reassign the tester."""
    run(
        client.issues.update_tester,
        args.project_id,
        args.order_number,
        args.comment,
        args.new_id,
        args.attach or None,
    )


def cmd_issues_priority(client: IssueTracker, args: argparse.Namespace) -> None:
    """Change the priority level."""
    run(
        client.issues.update_priority_level,
        args.project_id,
        args.order_number,
        args.comment,
        args.new_id,
        args.attach or None,
    )


def cmd_issues_reassignable(client: IssueTracker, args: argparse.Namespace) -> None:
    """List people available for reassignment."""
    run(client.issues.people_available_for_reassignment, args.project_id, args.order_number)


def cmd_issues_statuses(client: IssueTracker, args: argparse.Namespace) -> None:
    """List statuses the issue can change to."""
    run(client.issues.statuses_available_to_change_to, args.project_id, args.order_number)


def cmd_issues_list(client: IssueTracker, args: argparse.Namespace) -> None:
    """List issues from a view or a custom filter."""
    try:
        if args.custom_filter is not None:
            query = CustomFilterQuery(
                start_due_date=parse_date(args.start_due_date),
                end_due_date=parse_date(args.end_due_date),
                sort=args.sort,
                skip=args.skip,
                take=args.take,
            )
            response = client.issue_lists.by_custom_filter(args.custom_filter, query, project_id=args.project)
        else:
            options = IssueFilter(
                project_ids=parse_ids(args.project_ids),
                tag_ids=parse_ids(args.tag_ids),
                start_due_date=parse_date(args.start_due_date),
                end_due_date=parse_date(args.end_due_date),
                sort=args.sort,
                issue_creation_type=args.creation_type,
                skip=args.skip,
                take=args.take,
            )
            if args.project is not None:
                response = client.issue_lists.for_project(args.project, args.view, options)
            else:
                response = client.issue_lists.across_projects(args.view, options)
        response_output(response)
    except CLIError as e:
        error_output(e)


def cmd_activity_list(client: IssueTracker, args: argparse.Namespace) -> None:
    """List activity from a view or a custom filter."""
    try:
        if args.custom_filter is not None:
            query = CustomActivityQuery(
                start_due_date=parse_date(args.start_due_date),
                end_due_date=parse_date(args.end_due_date),
                from_date=parse_date(args.from_date),
                until_date=parse_date(args.until_date),
                hours_from_utc=args.hours_from_utc,
                skip=args.skip,
                take=args.take,
            )
            response = client.activity.by_custom_filter(args.custom_filter, query, project_id=args.project)
        else:
            options = ActivityFilter(
                project_ids=parse_ids(args.project_ids),
                tag_ids=parse_ids(args.tag_ids),
                start_due_date=parse_date(args.start_due_date),
                end_due_date=parse_date(args.end_due_date),
                from_date=parse_date(args.from_date),
                until_date=parse_date(args.until_date),
                hours_from_utc=args.hours_from_utc,
                issue_creation_type=args.creation_type,
                skip=args.skip,
                take=args.take,
            )
            if args.project is not None:
                response = client.activity.for_project(args.project, args.view, options)
            else:
                response = client.activity.across_projects(args.view, options)
        response_output(response)
    except CLIError as e:
        error_output(e)


def cmd_builds_list(client: IssueTracker, args: argparse.Namespace) -> None:
    """List release builds."""
    run(client.release_builds.list, args.project_id)


def cmd_builds_info(client: IssueTracker, args: argparse.Namespace) -> None:
    """Show issues ready for a release build."""
    run(client.release_builds.info, args.project_id)


def cmd_builds_create(client: IssueTracker, args: argparse.Namespace) -> None:
    """Create a release build."""
    try:
        order_numbers = parse_ids(args.issues) or []
        user_ids_to_cc = parse_ids(args.cc) or []
    except ValidationError as e:
        error_output(e)
        return
    run(
        client.release_builds.create,
        args.project_id,
        order_numbers,
        args.title,
        description=args.description,
        email_body=args.email_body,
        user_ids_to_cc=user_ids_to_cc,
    )


def cmd_lookups_priorities(client: IssueTracker, args: argparse.Namespace) -> None:
    run(client.lookups.priority_levels)


def cmd_lookups_creation_types(client: IssueTracker, args: argparse.Namespace) -> None:
    run(client.lookups.issue_creation_types)


def cmd_lookups_sort_types(client: IssueTracker, args: argparse.Namespace) -> None:
    run(client.lookups.issue_sort_types)


def cmd_filters_list(client: IssueTracker, args: argparse.Namespace) -> None:
    """List custom filters (project or global)."""
    if args.project is not None:
        run(client.filters.for_project, args.project)
    else:
        run(client.filters.global_filters)


# =============================================================================
# Main CLI
# =============================================================================


def _add_issue_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("project_id", type=int, help="Project ID")
    p.add_argument("order_number", type=int, help="Issue number within the project")


def _add_update_args(p: argparse.ArgumentParser, what: str) -> None:
    _add_issue_args(p)
    p.add_argument("new_id", type=int, help=f"New {what} ID")
    p.add_argument("--comment", "-c", default="", help="Comment to record with the change")
    p.add_argument("--attach", "-a", action="append", help="File to attach (repeatable)")


def _add_list_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--project", "-p", type=int, help="Restrict to one project")
    p.add_argument("--project-ids", help="Comma-separated project IDs (all-projects views)")
    p.add_argument("--tag-ids", help="Comma-separated tag IDs")
    p.add_argument("--start-due-date", help="YYYY-MM-DD")
    p.add_argument("--end-due-date", help="YYYY-MM-DD")
    p.add_argument("--creation-type", type=int, help="Issue creation type ID")
    p.add_argument("--custom-filter", type=int, help="Custom filter ID (instead of a view)")
    p.add_argument("--skip", type=int, help="Number of results to skip")
    p.add_argument("--take", type=int, help="Number of results to return")


def create_parser() -> argparse.ArgumentParser:  # noqa: PLR0915
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="donedone",
        description="DoneDone CLI - Command-line interface for the DoneDone IssueTracker API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration:
  DONEDONE_SUBDOMAIN, DONEDONE_USERNAME, DONEDONE_API_TOKEN
  DONEDONE_BASE_URL (optional full API URL), DONEDONE_TIMEOUT (seconds)

Output Modes:
  TTY (human):  Pretty-printed JSON
  Pipe:         Raw response body

Examples:
  donedone projects list
  donedone issues create 12 "Login broken" --priority 2 --fixer 7 --tester 9 -a screenshot.png
  donedone issues list waiting_on_you --project 12 --take 25
  donedone issues comment 12 34 "Fixed in build 101" -a build.log
""",
    )
    parser.add_argument("--subdomain", "-s", help="Account subdomain (overrides DONEDONE_SUBDOMAIN)")
    parser.add_argument("--base-url", help="Full API base URL (overrides DONEDONE_BASE_URL)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Companies ==========
    companies = subparsers.add_parser("companies", help="List and manage companies")
    companies.set_defaults(func=lambda _c, _a: companies.print_help())
    companies_sub = companies.add_subparsers(dest="subcommand")

    c_list = companies_sub.add_parser("list", help="List companies")
    c_list.set_defaults(func=cmd_companies_list)

    c_get = companies_sub.add_parser("get", help="Get company details")
    c_get.add_argument("company_id", type=int, help="Company ID")
    c_get.set_defaults(func=cmd_companies_get)

    c_create = companies_sub.add_parser("create", help="Create a company")
    c_create.add_argument("name", help="Company name")
    c_create.set_defaults(func=cmd_companies_create)

    c_update = companies_sub.add_parser("update", help="Rename a company")
    c_update.add_argument("company_id", type=int, help="Company ID")
    c_update.add_argument("name", help="New company name")
    c_update.set_defaults(func=cmd_companies_update)

    # ========== People ==========
    people = subparsers.add_parser("people", help="Look up people")
    people.set_defaults(func=lambda _c, _a: people.print_help())
    people_sub = people.add_subparsers(dest="subcommand")

    pe_get = people_sub.add_parser("get", help="Get person details")
    pe_get.add_argument("user_id", type=int, help="User ID")
    pe_get.set_defaults(func=cmd_people_get)

    # ========== Projects ==========
    projects = subparsers.add_parser("projects", help="List projects")
    projects.set_defaults(func=lambda _c, _a: projects.print_help())
    projects_sub = projects.add_subparsers(dest="subcommand")

    p_list = projects_sub.add_parser("list", help="List projects")
    p_list.set_defaults(func=cmd_projects_list)

    p_get = projects_sub.add_parser("get", help="Get project details")
    p_get.add_argument("project_id", type=int, help="Project ID")
    p_get.set_defaults(func=cmd_projects_get)

    p_people = projects_sub.add_parser("people", help="List people in a project")
    p_people.add_argument("project_id", type=int, help="Project ID")
    p_people.set_defaults(func=cmd_projects_people)

    # ========== Issues ==========
    issues = subparsers.add_parser("issues", help="Create, update and list issues")
    issues.set_defaults(func=lambda _c, _a: issues.print_help())
    issues_sub = issues.add_subparsers(dest="subcommand")

    i_get = issues_sub.add_parser("get", help="Get issue details")
    _add_issue_args(i_get)
    i_get.set_defaults(func=cmd_issues_get)

    i_create = issues_sub.add_parser("create", help="Create an issue")
    i_create.add_argument("project_id", type=int, help="Project ID")
    i_create.add_argument("title", help="Issue title")
    i_create.add_argument("--priority", type=int, required=True, help="Priority level ID")
    i_create.add_argument("--fixer", type=int, required=True, help="Fixer user ID")
    i_create.add_argument("--tester", type=int, required=True, help="Tester user ID")
    i_create.add_argument("--description", "-d", help="Issue description")
    i_create.add_argument("--tags", help="Comma-separated tag names")
    i_create.add_argument("--cc", help="Comma-separated user IDs to CC")
    i_create.add_argument("--due-date", help="Due date (YYYY-MM-DD)")
    i_create.add_argument("--attach", "-a", action="append", help="File to attach (repeatable)")
    i_create.set_defaults(func=cmd_issues_create)

    i_delete = issues_sub.add_parser("delete", help="Delete an issue")
    _add_issue_args(i_delete)
    i_delete.set_defaults(func=cmd_issues_delete)

    i_comment = issues_sub.add_parser("comment", help="Comment on an issue")
    _add_issue_args(i_comment)
    i_comment.add_argument("comment", help="Comment text")
    i_comment.add_argument("--attach", "-a", action="append", help="File to attach (repeatable)")
    i_comment.set_defaults(func=cmd_issues_comment)

    i_status = issues_sub.add_parser("status", help="Change issue status")
    _add_update_args(i_status, "status")
    i_status.set_defaults(func=cmd_issues_status)

    i_fixer = issues_sub.add_parser("fixer", help="Reassign the fixer")
    _add_update_args(i_fixer, "fixer")
    i_fixer.set_defaults(func=cmd_issues_fixer)

    i_tester = issues_sub.add_parser("tester", help="Reassign the tester")
    _add_update_args(i_tester, "tester")
    i_tester.set_defaults(func=cmd_issues_tester)

    i_priority = issues_sub.add_parser("priority", help="Change the priority level")
    _add_update_args(i_priority, "priority level")
    i_priority.set_defaults(func=cmd_issues_priority)

    i_reassign = issues_sub.add_parser("reassignable", help="People available for reassignment")
    _add_issue_args(i_reassign)
    i_reassign.set_defaults(func=cmd_issues_reassignable)

    i_statuses = issues_sub.add_parser("statuses", help="Statuses the issue can change to")
    _add_issue_args(i_statuses)
    i_statuses.set_defaults(func=cmd_issues_statuses)

    i_list = issues_sub.add_parser("list", help="List issues in a view")
    i_list.add_argument("view", nargs="?", default="all", choices=ISSUE_VIEWS, help="Issue view")
    _add_list_args(i_list)
    i_list.add_argument("--sort", type=int, help="Sort type ID")
    i_list.set_defaults(func=cmd_issues_list)

    # ========== Activity ==========
    activity = subparsers.add_parser("activity", help="Issue activity feeds")
    activity.set_defaults(func=lambda _c, _a: activity.print_help())
    activity_sub = activity.add_subparsers(dest="subcommand")

    ac_list = activity_sub.add_parser("list", help="List activity in a view")
    ac_list.add_argument("view", nargs="?", default="all_issues", choices=ACTIVITY_VIEWS, help="Activity view")
    _add_list_args(ac_list)
    ac_list.add_argument("--from-date", help="YYYY-MM-DD")
    ac_list.add_argument("--until-date", help="YYYY-MM-DD")
    ac_list.add_argument("--hours-from-utc", type=float, default=0, help="Local offset from UTC in hours")
    ac_list.set_defaults(func=cmd_activity_list)

    # ========== Release Builds ==========
    builds = subparsers.add_parser("builds", help="Release builds")
    builds.set_defaults(func=lambda _c, _a: builds.print_help())
    builds_sub = builds.add_subparsers(dest="subcommand")

    b_list = builds_sub.add_parser("list", help="List release builds")
    b_list.add_argument("project_id", type=int, help="Project ID")
    b_list.set_defaults(func=cmd_builds_list)

    b_info = builds_sub.add_parser("info", help="Issues ready for a release build")
    b_info.add_argument("project_id", type=int, help="Project ID")
    b_info.set_defaults(func=cmd_builds_info)

    b_create = builds_sub.add_parser("create", help="Create a release build")
    b_create.add_argument("project_id", type=int, help="Project ID")
    b_create.add_argument("title", help="Build title")
    b_create.add_argument("--issues", required=True, help="Comma-separated issue order numbers")
    b_create.add_argument("--description", "-d", default="", help="Build description")
    b_create.add_argument("--email-body", default="", help="Notification email body")
    b_create.add_argument("--cc", help="Comma-separated user IDs to notify")
    b_create.set_defaults(func=cmd_builds_create)

    # ========== Lookups ==========
    lookups = subparsers.add_parser("lookups", help="Reference lists")
    lookups.set_defaults(func=lambda _c, _a: lookups.print_help())
    lookups_sub = lookups.add_subparsers(dest="subcommand")

    l_prio = lookups_sub.add_parser("priorities", help="Priority levels")
    l_prio.set_defaults(func=cmd_lookups_priorities)

    l_creation = lookups_sub.add_parser("creation-types", help="Issue creation types")
    l_creation.set_defaults(func=cmd_lookups_creation_types)

    l_sort = lookups_sub.add_parser("sort-types", help="Issue sort types")
    l_sort.set_defaults(func=cmd_lookups_sort_types)

    # ========== Filters ==========
    filters = subparsers.add_parser("filters", help="Saved custom filters")
    filters.set_defaults(func=lambda _c, _a: filters.print_help())
    filters_sub = filters.add_subparsers(dest="subcommand")

    f_list = filters_sub.add_parser("list", help="List custom filters")
    f_list.add_argument("--project", "-p", type=int, help="Project ID (omit for global filters)")
    f_list.set_defaults(func=cmd_filters_list)

    return parser


def main() -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # Create client
    try:
        client = IssueTracker(subdomain=args.subdomain, base_url=args.base_url)
    except CLIError as e:
        error_output(e)
        return

    # Run command (all subparsers have default funcs that print help)
    args.func(client, args)


if __name__ == "__main__":
    main()
