"""
Audit policy: which requests are recorded by the audit middleware.
"""
import re


AUDITED_ACTIONS = {
    # Auth
    "POST:/api/auth/register": "auth.register",
    "POST:/api/auth/login": "auth.login",
    "POST:/api/auth/toggle-role": "auth.toggle_role",

    # Users
    "PATCH:/api/users/profile": "user.update_profile",

    # Investigations
    "POST:/api/investigations": "investigation.create",
    "PATCH:/api/investigations/{investigation_id}/accept": "investigation.accept",
    "PATCH:/api/investigations/{investigation_id}/complete": "investigation.complete",
    "POST:/api/investigations/{investigation_id}/decline": "investigation.decline",

    # Reports
    "POST:/api/reports/{investigation_id}": "report.submit",
    "POST:/api/reports/{investigation_id}/rate": "report.rate",
}

UUID_PATTERN = r"[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}"


def _compile(template: str) -> re.Pattern:
    return re.compile("^" + template.replace("{investigation_id}", UUID_PATTERN) + "$")


_COMPILED = [
    (key.split(":", 1)[0], _compile(key.split(":", 1)[1]), action)
    for key, action in AUDITED_ACTIONS.items()
]


def get_audit_action(method: str, path: str) -> str | None:
    """
    Get audit action for a request.

    Matches path patterns like /api/investigations/{id}/accept to the action.
    Returns None if the request has no named action.
    """
    normalized = path.rstrip("/")

    # Try exact match first
    key = f"{method}:{normalized}"
    if key in AUDITED_ACTIONS:
        return AUDITED_ACTIONS[key]

    for pattern_method, regex, action in _COMPILED:
        if method == pattern_method and regex.match(normalized):
            return action

    return None


def extract_resource_id(path: str) -> str | None:
    """Return the first UUID segment in the path, if any."""
    match = re.search(UUID_PATTERN, path)
    return match.group(0) if match else None
