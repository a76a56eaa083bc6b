"""
deptracker: one tracker ticket per outdated dependency.

deptracker lists the outdated direct dependencies of a Composer, npm or
pip project and makes sure the issue tracker (Jira) holds exactly one
ticket for each of them, reusing existing tickets across runs instead of
filing duplicates.

Typical flow:
    • Detect the ecosystem from the manifest name
    • Run the package manager's "list outdated" command
    • Search Jira for an existing ticket per update
    • Create the missing tickets, prioritized by update severity
"""

from __future__ import annotations

from deptracker.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "deptracker Contributors"
__license__ = "Apache-2.0"
__description__ = "Keep one issue-tracker ticket per outdated dependency."

__all__ = [
    "__version__",
]
