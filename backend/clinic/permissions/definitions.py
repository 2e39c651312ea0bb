# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- APPOINTMENTS --

APPOINTMENT_PERMISSIONS = [
    (
        "VIEW_APPOINTMENTS",
        "View Appointments",
        "View appointments and slot availability",
        PermissionCategory.APPOINTMENTS,
    ),
    (
        "MANAGE_APPOINTMENTS",
        "Manage Appointments",
        "Book, reschedule and change the status of appointments",
        PermissionCategory.APPOINTMENTS,
    ),
    (
        "REVIEW_BOOKING_REQUESTS",
        "Review Booking Requests",
        "Confirm or reject requests submitted from the public booking page",
        PermissionCategory.APPOINTMENTS,
    ),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    (
        "MANAGE_BUSINESS_HOURS",
        "Manage Business Hours",
        "Edit weekly opening hours and special-date overrides",
        PermissionCategory.SETTINGS,
    ),
]


# -- CASH --

CASH_PERMISSIONS = [
    (
        "OPERATE_CASH_DRAWER",
        "Operate Cash Drawer",
        "Record cash transactions and run own shifts",
        PermissionCategory.CASH,
    ),
    (
        "MANAGE_CASH_DRAWER",
        "Manage Cash Drawer",
        "Open and close drawers and manage other cashiers' shifts",
        PermissionCategory.CASH,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_CASH_REPORTS",
        "View Cash Reports",
        "View cash summaries, discrepancies and cashier accuracy",
        PermissionCategory.REPORTS,
    ),
]


PERMISSION_DEFINITIONS = (
    APPOINTMENT_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + CASH_PERMISSIONS
    + REPORT_PERMISSIONS
)
