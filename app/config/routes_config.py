"""
Routing configuration
Static table of the paths the access gate and the page loaders reason about.
"""

# Everything under this prefix requires a signed-in caller
PROTECTED_PREFIX = "/dashboard"

LANDING_PATH = "/"

# Where a signed-in caller lands, by role value
ROLE_HOME_PATHS = {
    "participant": "/dashboard/athlete",
    "event_manager": "/dashboard",
}

# Used whenever the role cannot be determined
DEFAULT_HOME_PATH = "/dashboard"

# The gate never runs for these (API, docs, health checks, static files)
GATE_EXCLUDED_PREFIXES = (
    "/api",
    "/static",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/health",
    "/ready",
    "/favicon.ico",
)

GATE_EXCLUDED_SUFFIXES = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico")

# List views refreshed after a competition or participation write
COMPETITION_LIST_VIEWS = (
    "/dashboard",
    "/dashboard/athlete",
    "/competitions",
)


def competition_detail_path(competition_id: str) -> str:
    return f"/competition/{competition_id}"


def is_gate_excluded(path: str) -> bool:
    """True for paths the access gate must not inspect"""
    if any(path == p or path.startswith(p + "/") for p in GATE_EXCLUDED_PREFIXES):
        return True
    return path.lower().endswith(GATE_EXCLUDED_SUFFIXES)
