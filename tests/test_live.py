"""
Live smoke tests against the real DoneDone API.

Skipped unless DONEDONE_SUBDOMAIN, DONEDONE_USERNAME and DONEDONE_API_TOKEN
are set (directly or via the project's .env file).
"""

import json
import os

import pytest

from donedone_cli import IssueTracker
from donedone_cli.core.errors import ProtocolError

pytestmark = [
    pytest.mark.live,
    pytest.mark.skipif(
        not all(os.environ.get(k) for k in ("DONEDONE_SUBDOMAIN", "DONEDONE_USERNAME", "DONEDONE_API_TOKEN")),
        reason="DONEDONE_* credentials not configured",
    ),
]


@pytest.fixture(scope="module")
def tracker() -> IssueTracker:
    return IssueTracker()


def test_priority_levels_is_json(tracker):
    levels = json.loads(tracker.lookups.priority_levels())
    assert isinstance(levels, list)


def test_projects_is_json(tracker):
    assert isinstance(json.loads(tracker.projects.list()), list)


def test_unknown_issue_is_protocol_error(tracker):
    with pytest.raises(ProtocolError) as exc_info:
        tracker.issues.get(0, 0)
    assert 400 <= exc_info.value.status < 500
