"""
InviteWatch - tails client log files for invite notifications.

This package watches a log directory for the newest ``output_log_*.txt``
file, extracts invite and request-invite notifications from new lines,
and enriches invites with world metadata fetched from a remote API.
"""

__version__ = "0.1.0"
