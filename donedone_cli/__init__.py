"""
DoneDone CLI - Three-layer client for the DoneDone IssueTracker API.

Layers:
- core: Request/response engine (auth, body encoding, transport, errors)
- sdk: High-level IssueTracker with one method per endpoint
- cli: Command-line interface
"""

import logging

from donedone_cli.sdk import IssueTracker

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = ["IssueTracker"]
