"""User-Agent classification into browser, operating system and device type."""

from dataclasses import dataclass

UNKNOWN = "Unknown"

# Order matters: most browsers advertise several engines ("Chrome ... Safari",
# "Edg ... Chrome ... Safari"), so the more specific tokens come first.
_BROWSER_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Edge", ("Edg/", "EdgA/", "EdgiOS/", "Edge/")),
    ("Opera", ("OPR/", "Opera")),
    ("Samsung Internet", ("SamsungBrowser/",)),
    ("Firefox", ("Firefox/", "FxiOS/")),
    ("Chrome", ("Chrome/", "CriOS/")),
    ("Internet Explorer", ("MSIE ", "Trident/")),
)

# iOS before macOS ("like Mac OS X"), Android before Linux
_OS_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Windows", ("Windows",)),
    ("iOS", ("iPhone", "iPad", "iPod")),
    ("Android", ("Android",)),
    ("ChromeOS", ("CrOS",)),
    ("macOS", ("Macintosh", "Mac OS X")),
    ("Linux", ("Linux", "X11")),
)

_BOT_TOKENS = ("bot", "crawler", "spider", "slurp", "curl/", "wget/", "python-requests", "httpx/")

_DESKTOP_OS = frozenset({"Windows", "macOS", "Linux", "ChromeOS"})


@dataclass(frozen=True, slots=True)
class UserAgentInfo:
    """Classification of a single User-Agent string."""

    browser: str = UNKNOWN
    os: str = UNKNOWN
    device_type: str = UNKNOWN


def _match(ua: str, rules: tuple[tuple[str, tuple[str, ...]], ...]) -> str:
    for name, tokens in rules:
        if any(token in ua for token in tokens):
            return name
    return UNKNOWN


def _browser(ua: str) -> str:
    browser = _match(ua, _BROWSER_RULES)
    if browser != UNKNOWN:
        return browser
    # Safari only once every Chromium-based browser has been ruled out
    if "Safari/" in ua and "Version/" in ua:
        return "Safari"
    return UNKNOWN


def _device_type(ua: str, os_name: str) -> str:
    lowered = ua.lower()
    if any(token in lowered for token in _BOT_TOKENS):
        return "Bot"
    if "iPad" in ua or "Tablet" in ua or ("Android" in ua and "Mobile" not in ua):
        return "Tablet"
    if "Mobi" in ua or "iPhone" in ua or "iPod" in ua:
        return "Mobile"
    if os_name in _DESKTOP_OS:
        return "Desktop"
    return UNKNOWN


def classify_user_agent(user_agent: str | None) -> UserAgentInfo:
    """Classify a raw User-Agent header.

    Args:
        user_agent: The header value; may be empty or missing.

    Returns:
        UserAgentInfo with ``"Unknown"`` in any field that could not be
        determined.
    """
    if not user_agent or not user_agent.strip():
        return UserAgentInfo()

    os_name = _match(user_agent, _OS_RULES)
    return UserAgentInfo(
        browser=_browser(user_agent),
        os=os_name,
        device_type=_device_type(user_agent, os_name),
    )
