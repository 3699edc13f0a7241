"""
Exceptions raised while building the match views and reports.
"""

from typing import Iterable, List, Optional


class SnookerStatsError(Exception):
    """Base class for errors raised by the snooker statistics package"""


class DataIntegrityError(SnookerStatsError):
    """
    The loaded snapshot is inconsistent (unknown references, invalid rows).

    Args:
        message: Human readable description
        rows: Identifiers of the offending rows (match ids, row numbers)
    """

    def __init__(self, message: str, rows: Optional[Iterable] = None):
        self.rows: List = list(rows) if rows is not None else []
        if self.rows:
            preview = ', '.join(str(r) for r in self.rows[:10])
            more = f" (+{len(self.rows) - 10} more)" if len(self.rows) > 10 else ""
            message = f"{message}: {preview}{more}"
        super().__init__(message)


class NoSampleData(SnookerStatsError):
    """A ratio was requested for a group whose denominator is zero"""

    def __init__(self, message: str = "Ratio denominator is zero", groups: Optional[Iterable] = None):
        self.groups: List = list(groups) if groups is not None else []
        super().__init__(message)
