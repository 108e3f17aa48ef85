"""Prometheus metrics for observability."""
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST

# =============================================================================
# Investigation Metrics
# =============================================================================

investigations_created = Counter(
    "hub_investigations_created_total",
    "Total number of investigation requests created",
)

investigation_transitions = Counter(
    "hub_investigation_transitions_total",
    "Total number of lifecycle transitions",
    ["transition", "outcome"],
)

# =============================================================================
# Report Metrics
# =============================================================================

reports_submitted = Counter(
    "hub_reports_submitted_total",
    "Total number of investigation reports submitted",
)

reports_rated = Counter(
    "hub_reports_rated_total",
    "Total number of reports rated, by score",
    ["rating"],
)

# =============================================================================
# Auth Metrics
# =============================================================================

login_attempts = Counter(
    "hub_login_attempts_total",
    "Total number of login attempts",
    ["result"],
)


def get_metrics():
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type():
    """Get Prometheus content type."""
    return CONTENT_TYPE_LATEST
