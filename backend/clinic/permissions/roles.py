# Overview: Closed set of staff roles and the permissions each one grants.


class StaffRole:
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    VETERINARIAN = "VETERINARIAN"
    RECEPTIONIST = "RECEPTIONIST"
    CASHIER = "CASHIER"
    ASSISTANT = "ASSISTANT"

    ALL = (OWNER, ADMIN, VETERINARIAN, RECEPTIONIST, CASHIER, ASSISTANT)


_MANAGEMENT = [
    "VIEW_APPOINTMENTS",
    "MANAGE_APPOINTMENTS",
    "REVIEW_BOOKING_REQUESTS",
    "MANAGE_BUSINESS_HOURS",
    "OPERATE_CASH_DRAWER",
    "MANAGE_CASH_DRAWER",
    "VIEW_CASH_REPORTS",
]

DEFAULT_ROLE_PERMISSIONS = {
    StaffRole.OWNER: _MANAGEMENT,
    StaffRole.ADMIN: _MANAGEMENT,
    StaffRole.VETERINARIAN: [
        "VIEW_APPOINTMENTS",
        "MANAGE_APPOINTMENTS",
    ],
    StaffRole.RECEPTIONIST: [
        "VIEW_APPOINTMENTS",
        "MANAGE_APPOINTMENTS",
        "REVIEW_BOOKING_REQUESTS",
        "OPERATE_CASH_DRAWER",
    ],
    StaffRole.CASHIER: [
        "VIEW_APPOINTMENTS",
        "OPERATE_CASH_DRAWER",
    ],
    StaffRole.ASSISTANT: [
        "VIEW_APPOINTMENTS",
    ],
}
