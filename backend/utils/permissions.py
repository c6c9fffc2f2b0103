"""
Role hierarchy for program staff.

Roles are ordered; a check for a minimum role passes for that role and every
role above it. Unknown role strings rank below ``guest``.
"""

ROLE_LEVELS = {
    "superadmin": 5,
    "admin": 4,
    "lead_instructor": 3,
    "instructor": 2,
    "guest": 1,
}

ROLE_LABELS = {
    "superadmin": "Super Admin",
    "admin": "Admin",
    "lead_instructor": "Lead Instructor",
    "instructor": "Instructor",
    "guest": "Guest",
}


def get_role_level(role):
    return ROLE_LEVELS.get(role or "", 0)


def has_min_role(user_role, required_role):
    if required_role not in ROLE_LEVELS:
        raise ValueError(f"Unknown role '{required_role}'")
    return get_role_level(user_role) >= ROLE_LEVELS[required_role]


def can_access_clinical(role):
    # Clinical & internship section: lead_instructor and up
    return has_min_role(role, "lead_instructor")


def can_access_admin(role):
    return has_min_role(role, "admin")


def get_role_label(role):
    return ROLE_LABELS.get(role, role)
