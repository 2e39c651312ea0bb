# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    APPOINTMENTS = "APPOINTMENTS"
    SETTINGS = "SETTINGS"
    CASH = "CASH"
    REPORTS = "REPORTS"
