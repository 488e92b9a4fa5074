"""Device metadata for session records: browser and OS recognised from the User-Agent."""

from starlette.requests import HTTPConnection
from user_agents import parse as parse_user_agent

UNKNOWN = "Unknown"

# ua-parser's family for anything its regex database does not recognise.
_UNRECOGNISED_FAMILY = "Other"


def _describe(family: str | None, version: str | None) -> str:
    if not family or family == _UNRECOGNISED_FAMILY:
        return UNKNOWN
    return f"{family} {version or ''}".strip()


def parse_device_info(user_agent: str | None, ip: str | None) -> dict[str, str | None]:
    """Return {user_agent, ip, browser, os}; browser/os are "Unknown" when unrecognised."""
    ua = (user_agent or "").strip()
    if not ua:
        return {"user_agent": None, "ip": ip, "browser": UNKNOWN, "os": UNKNOWN}
    parsed = parse_user_agent(ua)
    return {
        "user_agent": ua,
        "ip": ip,
        "browser": _describe(parsed.browser.family, parsed.browser.version_string),
        "os": _describe(parsed.os.family, parsed.os.version_string),
    }


def client_ip(conn: HTTPConnection) -> str | None:
    """First X-Forwarded-For hop when behind a proxy, else the socket peer."""
    forwarded = conn.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return conn.client.host if conn.client else None
