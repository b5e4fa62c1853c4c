"""Detection lists used by the risk and fingerprint scorers.

Each user agent rule is a ``(name, pattern)`` pair; lists are evaluated in
order and the first match wins. Provider lists are lowercase substrings
matched against the lowercased ISP/org/AS strings.
"""

import re
from typing import List, Optional, Tuple

UserAgentRule = Tuple[str, re.Pattern]


def _rules(patterns: List[Tuple[str, str]], flags: int = re.IGNORECASE) -> List[UserAgentRule]:
    return [(name, re.compile(pattern, flags)) for name, pattern in patterns]


# A match returns a fingerprint score of 0 regardless of other headers
KNOWN_AUTOMATION_RULES: List[UserAgentRule] = _rules([
    ("bot", r"bot"),
    ("crawler", r"crawler"),
    ("spider", r"spider"),
    ("scraper", r"scraper"),
    ("curl", r"curl"),
    ("wget", r"wget"),
    ("python", r"python"),
    ("java", r"java"),
    ("ruby", r"ruby"),
    ("perl", r"perl"),
    ("php", r"php"),
    ("go-http-client", r"go-http-client"),
    ("axios", r"axios"),
    ("node-fetch", r"node-fetch"),
    ("okhttp", r"okhttp"),
    ("apache-httpclient", r"apache-httpclient"),
    ("postman", r"postman"),
    ("insomnia", r"insomnia"),
    ("googlebot", r"googlebot"),
    ("bingbot", r"bingbot"),
    ("slackbot", r"slackbot"),
    ("twitterbot", r"twitterbot"),
    ("facebookexternalhit", r"facebookexternalhit"),
    ("linkedinbot", r"linkedinbot"),
    ("whatsapp", r"whatsapp"),
    ("telegram", r"telegram"),
])

# A match withholds the base user agent points
SUSPICIOUS_UA_RULES: List[UserAgentRule] = [
    ("empty", re.compile(r"^$")),
    ("bare-mozilla", re.compile(r"^Mozilla/5\.0$")),
    *_rules([
        ("headless-chrome", r"HeadlessChrome"),
        ("phantomjs", r"PhantomJS"),
        ("selenium", r"Selenium"),
        ("webdriver", r"WebDriver"),
    ]),
]

VPN_PROVIDERS: Tuple[str, ...] = (
    "nordvpn",
    "expressvpn",
    "surfshark",
    "protonvpn",
    "private internet access",
    "cyberghost",
)

CLOUD_PROVIDERS: Tuple[str, ...] = (
    "cloudflare",
    "fastly",
    "akamai",
    "aws",
    "google cloud",
    "azure",
)

TOR_AS_MARKERS: Tuple[str, ...] = ("tor", "exit")


def first_match(rules: List[UserAgentRule], value: str) -> Optional[str]:
    """Return the name of the first rule whose pattern matches ``value``."""
    for name, pattern in rules:
        if pattern.search(value):
            return name
    return None


def contains_any(haystacks: Tuple[str, ...], needles: Tuple[str, ...]) -> bool:
    """Case-insensitive substring match of any needle in any haystack."""
    lowered = [h.lower() for h in haystacks]
    return any(needle.lower() in h for needle in needles for h in lowered)
