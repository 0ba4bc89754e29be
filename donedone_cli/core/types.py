"""
Core types for the DoneDone request engine and its query options.

The query option dataclasses replace long lists of independently optional
arguments: every field defaults to None ("unset") and unset fields are left
out of the query string.
"""

import urllib.parse
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Protocol

# =============================================================================
# Request / Response
# =============================================================================


class RequestMethod(str, Enum):
    """HTTP methods used by the API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class RequestBody(Protocol):
    """An encoded request body that can produce its bytes any number of times."""

    content_type: str

    @property
    def content_length(self) -> int: ...

    def payload(self) -> bytes | Iterable[bytes]: ...


@dataclass
class RequestSpec:
    """A fully resolved outgoing request.

    ``body`` is the encoded body, not its bytes: each send asks it for a
    fresh payload, so a spec can be sent more than once.
    """

    method: RequestMethod
    url: str
    auth_header: str
    body: RequestBody | None = None
    content_type: str | None = None
    content_length: int | None = None

    def headers(self) -> dict[str, str]:
        """Headers to send with this request."""
        headers = {
            "Authorization": self.auth_header,
            "Accept": "application/json",
        }
        if self.content_type is not None:
            headers["Content-Type"] = self.content_type
        if self.content_length is not None:
            headers["Content-Length"] = str(self.content_length)
        return headers


@dataclass(frozen=True)
class RawResponse:
    """An HTTP response captured as-is."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body_text: str = ""


# =============================================================================
# Query options
# =============================================================================


Params = list[tuple[str, str]]


def _join(values: Iterable[object]) -> str:
    return ",".join(str(v) for v in values)


def _format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def _add(params: Params, key: str, value: object) -> None:
    """Append ``key`` unless value is unset."""
    if value is None:
        return
    if isinstance(value, date):
        params.append((key, _format_date(value)))
    elif isinstance(value, (list, tuple, set, frozenset)):
        params.append((key, _join(value)))
    else:
        params.append((key, str(value)))


def with_query(path: str, params: Params) -> str:
    """Append an encoded query string to ``path`` when there are params."""
    if not params:
        return path
    query = urllib.parse.urlencode(params, safe=",")
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{query}"


@dataclass
class IssueFilter:
    """Options for the built-in issue list views."""

    project_ids: list[int] | None = None
    tag_ids: list[int] | None = None
    start_due_date: date | None = None
    end_due_date: date | None = None
    sort: int | None = None
    issue_creation_type: int | None = None
    skip: int | None = None
    take: int | None = None

    def to_params(self) -> Params:
        params: Params = []
        _add(params, "project_ids", self.project_ids)
        _add(params, "tag_ids", self.tag_ids)
        _add(params, "start_due_date", self.start_due_date)
        _add(params, "end_due_date", self.end_due_date)
        _add(params, "sort", self.sort)
        _add(params, "issue_creation_type", self.issue_creation_type)
        _add(params, "skip", self.skip)
        _add(params, "take", self.take)
        return params


@dataclass
class ActivityFilter:
    """Options for the built-in activity views. ``hours_from_utc`` is always sent."""

    project_ids: list[int] | None = None
    tag_ids: list[int] | None = None
    start_due_date: date | None = None
    end_due_date: date | None = None
    from_date: date | None = None
    until_date: date | None = None
    hours_from_utc: float = 0
    issue_creation_type: int | None = None
    skip: int | None = None
    take: int | None = None

    def to_params(self) -> Params:
        params: Params = []
        _add(params, "project_ids", self.project_ids)
        _add(params, "tag_ids", self.tag_ids)
        _add(params, "start_due_date", self.start_due_date)
        _add(params, "end_due_date", self.end_due_date)
        _add(params, "from_date", self.from_date)
        _add(params, "until_date", self.until_date)
        params.append(("hours_from_utc", _format_hours(self.hours_from_utc)))
        _add(params, "issue_creation_type", self.issue_creation_type)
        _add(params, "skip", self.skip)
        _add(params, "take", self.take)
        return params


@dataclass
class CustomFilterQuery:
    """Options for issues matched by a saved custom filter."""

    start_due_date: date | None = None
    end_due_date: date | None = None
    sort: int | None = None
    skip: int | None = None
    take: int | None = None

    def to_params(self) -> Params:
        params: Params = []
        _add(params, "start_due_date", self.start_due_date)
        _add(params, "end_due_date", self.end_due_date)
        _add(params, "sort", self.sort)
        _add(params, "skip", self.skip)
        _add(params, "take", self.take)
        return params


@dataclass
class CustomActivityQuery:
    """Options for activity on issues matched by a saved custom filter."""

    start_due_date: date | None = None
    end_due_date: date | None = None
    from_date: date | None = None
    until_date: date | None = None
    hours_from_utc: float = 0
    skip: int | None = None
    take: int | None = None

    def to_params(self) -> Params:
        params: Params = []
        _add(params, "start_due_date", self.start_due_date)
        _add(params, "end_due_date", self.end_due_date)
        _add(params, "from_date", self.from_date)
        _add(params, "until_date", self.until_date)
        params.append(("hours_from_utc", _format_hours(self.hours_from_utc)))
        _add(params, "skip", self.skip)
        _add(params, "take", self.take)
        return params


def _format_hours(value: float) -> str:
    # 0 -> "0", 5.5 -> "5.5", -7.0 -> "-7"
    return str(int(value)) if float(value).is_integer() else str(value)

