"""
DoneDone SDK - High-level client with nice ergonomics.

This layer provides one method per IssueTracker API endpoint. Each method
assembles a relative path plus its fields or query string and hands off to
the core APIClient. Responses are returned as raw JSON text.
"""

import os
from collections.abc import Sequence
from datetime import date, datetime

from donedone_cli.core.client import APIClient
from donedone_cli.core.errors import ValidationError
from donedone_cli.core.types import (
    ActivityFilter,
    CustomActivityQuery,
    CustomFilterQuery,
    IssueFilter,
    with_query,
)

# Built-in issue list views, e.g. projects/{id}/issues/{view}.json
ISSUE_VIEWS = (
    "waiting_on_you",
    "waiting_on_them",
    "youre_ccd_on",
    "your_active",
    "all_yours",
    "all_active",
    "all_closed_and_fixed",
    "all",
)

# Built-in activity views, e.g. projects/{id}/activity/{view}.json
ACTIVITY_VIEWS = (
    "issues_waiting_on_you",
    "issues_waiting_on_them",
    "issues_youre_ccd_on",
    "your_active_issues",
    "all_your_issues",
    "all_active_issues",
    "all_closed_and_fixed_issues",
    "all_issues",
)

Attachments = Sequence[str | os.PathLike] | None


def _join(values: Sequence[object]) -> str:
    return ",".join(str(v) for v in values)


def _check_view(view: str, allowed: tuple[str, ...]) -> str:
    if view not in allowed:
        raise ValidationError(
            f"Unknown view '{view}'",
            details={"available_views": list(allowed)},
        )
    return view


class IssueTracker:
    """
    High-level DoneDone IssueTracker client.

    Example:
        tracker = IssueTracker("mycompany", "jane", "api-token")

        projects = tracker.projects.list()
        tracker.issues.create(
            project_id=12,
            title="Login button broken",
            priority_level_id=2,
            fixer_id=7,
            tester_id=9,
            attachments=["screenshot.png"],
        )
        tracker.issue_lists.for_project(12, "waiting_on_you", IssueFilter(take=25))

    """

    def __init__(
        self,
        subdomain: str | None = None,
        username: str | None = None,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize the IssueTracker client.

        Args:
            subdomain: Account subdomain (or DONEDONE_SUBDOMAIN env var)
            username: DoneDone username (or DONEDONE_USERNAME env var)
            api_token: Password or API token (or DONEDONE_API_TOKEN env var)
            base_url: Full API base URL override (or DONEDONE_BASE_URL env var)
            timeout: Request timeout in seconds

        """
        self._client = APIClient(
            subdomain=subdomain,
            username=username,
            api_token=api_token,
            base_url=base_url,
            timeout=timeout,
        )

        # Sub-clients for different domains
        self.companies = CompanyOperations(self._client)
        self.people = PeopleOperations(self._client)
        self.projects = ProjectOperations(self._client)
        self.issues = IssueOperations(self._client)
        self.release_builds = ReleaseBuildOperations(self._client)
        self.lookups = LookupOperations(self._client)
        self.filters = FilterOperations(self._client)
        self.issue_lists = IssueListOperations(self._client)
        self.activity = ActivityOperations(self._client)

    @property
    def base_url(self) -> str:
        """Get the API base URL."""
        return self._client.base_url


# =============================================================================
# Companies & People
# =============================================================================


class CompanyOperations:
    """Operations on companies in the account."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> str:
        """List all companies."""
        return self._client.get("companies.json")

    def get(self, company_id: int) -> str:
        """Get a company and its people."""
        return self._client.get(f"companies/{company_id}.json")

    def create(self, company_name: str) -> str:
        """Create a company."""
        return self._client.post("companies.json", [("company_name", company_name)])

    def update(self, company_id: int, company_name: str) -> str:
        """Rename a company."""
        return self._client.put(f"companies/{company_id}.json", [("company_name", company_name)])


class PeopleOperations:
    """Operations on people."""

    def __init__(self, client: APIClient):
        self._client = client

    def get(self, user_id: int) -> str:
        """Get a person's details."""
        return self._client.get(f"people/{user_id}.json")


# =============================================================================
# Projects
# =============================================================================


class ProjectOperations:
    """Operations on projects."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> str:
        """List all projects the user can see."""
        return self._client.get("projects.json")

    def get(self, project_id: int) -> str:
        """Get a project."""
        return self._client.get(f"projects/{project_id}.json")

    def people(self, project_id: int) -> str:
        """List people with access to a project."""
        return self._client.get(f"projects/{project_id}/people.json")


# =============================================================================
# Issues
# =============================================================================


class IssueOperations:
    """Operations on a single issue, addressed by project and order number."""

    def __init__(self, client: APIClient):
        self._client = client

    @staticmethod
    def _path(project_id: int, order_number: int, suffix: str = "") -> str:
        return f"projects/{project_id}/issues/{order_number}{suffix}.json"

    def get(self, project_id: int, order_number: int) -> str:
        """Get an issue."""
        return self._client.get(self._path(project_id, order_number))

    def create(
        self,
        project_id: int,
        title: str,
        priority_level_id: int,
        fixer_id: int,
        tester_id: int,
        description: str | None = None,
        tags: Sequence[str] | None = None,
        user_ids_to_cc: Sequence[int] | None = None,
        due_date: date | None = None,
        attachments: Attachments = None,
    ) -> str:
        """
        Create an issue.

        Args:
            project_id: Project to create the issue in
            title: Issue title
            priority_level_id: See lookups.priority_levels()
            fixer_id: User assigned to fix the issue
            tester_id: User assigned to test the fix
            description: Issue description
            tags: Tag names
            user_ids_to_cc: Users to CC on updates
            due_date: Due date
            attachments: File paths to upload with the issue

        Returns:
            Raw JSON response

        """
        fields: list[tuple[str, str]] = [
            ("title", title),
            ("priority_level_id", str(priority_level_id)),
            ("fixer_id", str(fixer_id)),
            ("tester_id", str(tester_id)),
        ]
        if description is not None:
            fields.append(("description", description))
        if tags is not None:
            fields.append(("tags", _join(tags)))
        if user_ids_to_cc is not None:
            fields.append(("user_ids_to_cc", _join(user_ids_to_cc)))
        if due_date is not None:
            fields.append(("due_date", _format_due_date(due_date)))

        return self._client.post(f"projects/{project_id}/issues.json", fields, attachments)

    def delete(self, project_id: int, order_number: int) -> str:
        """Delete an issue."""
        return self._client.delete(self._path(project_id, order_number))

    def people_available_for_reassignment(self, project_id: int, order_number: int) -> str:
        """List people the issue can be reassigned to."""
        return self._client.get(self._path(project_id, order_number, "/people/available_for_reassignment"))

    def statuses_available_to_change_to(self, project_id: int, order_number: int) -> str:
        """List statuses the issue can move to."""
        return self._client.get(self._path(project_id, order_number, "/statuses/available_to_change_to"))

    def add_comment(
        self,
        project_id: int,
        order_number: int,
        comment: str,
        attachments: Attachments = None,
    ) -> str:
        """Add a comment, optionally with attachments."""
        return self._client.post(
            self._path(project_id, order_number, "/comments"),
            [("comment", comment)],
            attachments,
        )

    def _update(
        self,
        project_id: int,
        order_number: int,
        attribute: str,
        comment: str,
        new_id: int,
        attachments: Attachments,
    ) -> str:
        return self._client.put(
            self._path(project_id, order_number, f"/{attribute}"),
            [("comment", comment), (f"new_{attribute}_id", str(new_id))],
            attachments,
        )

    def update_status(
        self,
        project_id: int,
        order_number: int,
        comment: str,
        new_status_id: int,
        attachments: Attachments = None,
    ) -> str:
        """Change the issue status with a comment."""
        return self._update(project_id, order_number, "status", comment, new_status_id, attachments)

    def update_fixer(
        self,
        project_id: int,
        order_number: int,
        comment: str,
        new_fixer_id: int,
        attachments: Attachments = None,
    ) -> str:
        """Reassign the fixer with a comment."""
        return self._update(project_id, order_number, "fixer", comment, new_fixer_id, attachments)

    def update_tester(
        self,
        project_id: int,
        order_number: int,
        comment: str,
        new_tester_id: int,
        attachments: Attachments = None,
    ) -> str:
        """Reassign the tester with a comment."""
        return self._update(project_id, order_number, "tester", comment, new_tester_id, attachments)

    def update_priority_level(
        self,
        project_id: int,
        order_number: int,
        comment: str,
        new_priority_level_id: int,
        attachments: Attachments = None,
    ) -> str:
        """Change the priority level with a comment."""
        return self._update(
            project_id, order_number, "priority_level", comment, new_priority_level_id, attachments
        )


def _format_due_date(value: date) -> str:
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    return value.isoformat()


# =============================================================================
# Release Builds
# =============================================================================


class ReleaseBuildOperations:
    """Operations on release builds."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, project_id: int) -> str:
        """List release builds for a project."""
        return self._client.get(f"projects/{project_id}/release_builds.json")

    def info(self, project_id: int) -> str:
        """Get the issues ready for the next release build."""
        return self._client.get(f"projects/{project_id}/release_builds/info.json")

    def create(
        self,
        project_id: int,
        order_numbers: Sequence[int],
        title: str,
        description: str = "",
        email_body: str = "",
        user_ids_to_cc: Sequence[int] = (),
    ) -> str:
        """
        Create a release build from a set of issues.

        Args:
            project_id: The project ID
            order_numbers: Issues included in the build
            title: Build title
            description: Build description
            email_body: Body of the notification email
            user_ids_to_cc: Users notified of the build

        Returns:
            Raw JSON response

        """
        return self._client.post(
            f"projects/{project_id}/release_builds.json",
            [
                ("order_numbers", _join(order_numbers)),
                ("user_ids_to_cc", _join(user_ids_to_cc)),
                ("title", title),
                ("email_body", email_body),
                ("description", description),
            ],
        )


# =============================================================================
# Lookups & Filters
# =============================================================================


class LookupOperations:
    """Account-wide reference lists."""

    def __init__(self, client: APIClient):
        self._client = client

    def priority_levels(self) -> str:
        return self._client.get("priority_levels.json")

    def issue_creation_types(self) -> str:
        return self._client.get("issue_creation_types.json")

    def issue_sort_types(self) -> str:
        return self._client.get("issue_sort_types.json")


class FilterOperations:
    """Saved custom filters."""

    def __init__(self, client: APIClient):
        self._client = client

    def for_project(self, project_id: int) -> str:
        """List custom filters defined on a project."""
        return self._client.get(f"projects/{project_id}/custom_filters.json")

    def global_filters(self) -> str:
        """List global custom filters."""
        return self._client.get("global_custom_filters.json")


# =============================================================================
# Issue Lists & Activity
# =============================================================================


class IssueListOperations:
    """Lists of issues from built-in views or saved custom filters."""

    def __init__(self, client: APIClient):
        self._client = client

    def for_project(self, project_id: int, view: str, options: IssueFilter | None = None) -> str:
        """
        Get the issues in a built-in view for one project.

        ``options.project_ids`` is ignored; the project comes from the path.
        """
        _check_view(view, ISSUE_VIEWS)
        options = options or IssueFilter()
        params = [p for p in options.to_params() if p[0] != "project_ids"]
        return self._client.get(with_query(f"projects/{project_id}/issues/{view}.json", params))

    def across_projects(self, view: str, options: IssueFilter | None = None) -> str:
        """Get the issues in a built-in view across projects."""
        _check_view(view, ISSUE_VIEWS)
        options = options or IssueFilter()
        return self._client.get(with_query(f"issues/{view}.json", options.to_params()))

    def by_custom_filter(
        self,
        custom_filter_id: int,
        options: CustomFilterQuery | None = None,
        project_id: int | None = None,
    ) -> str:
        """Get the issues matched by a custom filter (project or global)."""
        if project_id is not None:
            path = f"projects/{project_id}/issues/by_custom_filter/{custom_filter_id}.json"
        else:
            path = f"issues/by_global_custom_filter/{custom_filter_id}.json"
        options = options or CustomFilterQuery()
        return self._client.get(with_query(path, options.to_params()))


class ActivityOperations:
    """Activity feeds for built-in views or saved custom filters."""

    def __init__(self, client: APIClient):
        self._client = client

    def for_project(self, project_id: int, view: str, options: ActivityFilter | None = None) -> str:
        """
        Get activity on the issues in a built-in view for one project.

        ``options.project_ids`` is ignored; the project comes from the path.
        """
        _check_view(view, ACTIVITY_VIEWS)
        options = options or ActivityFilter()
        params = [p for p in options.to_params() if p[0] != "project_ids"]
        return self._client.get(with_query(f"projects/{project_id}/activity/{view}.json", params))

    def across_projects(self, view: str, options: ActivityFilter | None = None) -> str:
        """Get activity on the issues in a built-in view across projects."""
        _check_view(view, ACTIVITY_VIEWS)
        options = options or ActivityFilter()
        return self._client.get(with_query(f"activity/{view}.json", options.to_params()))

    def by_custom_filter(
        self,
        custom_filter_id: int,
        options: CustomActivityQuery | None = None,
        project_id: int | None = None,
    ) -> str:
        """Get activity on the issues matched by a custom filter."""
        if project_id is not None:
            path = f"projects/{project_id}/activity/issues_by_custom_filter/{custom_filter_id}.json"
        else:
            path = f"activity/issues_by_global_custom_filter/{custom_filter_id}.json"
        options = options or CustomActivityQuery()
        return self._client.get(with_query(path, options.to_params()))
