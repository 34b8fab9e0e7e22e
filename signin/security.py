from re import match as regex_match
from urllib.parse import urlparse

import aiohttp

PRIVATE_TLDS = ["local", "arpa", "internal", "localhost"]
# names are appended to the lookup URL path, so no separators or query characters
LOOKUP_NAME_REGEX = r"^[a-zA-Z0-9_-]+(\.[a-zA-Z0-9_-]+)*$"


# crude filter for URLs fetched while verifying a sign in (name lookups). It only
# rejects obviously internal targets, the HTTP client still has to be hardened.
def is_safe_url(url: str) -> bool:
    parts = urlparse(url)
    if parts.scheme != "https" or parts.hostname is None:
        return False
    if parts.username is not None or parts.password is not None:
        return False
    if parts.port is not None or parts.hostname != parts.netloc:
        return False

    segments = parts.hostname.split(".")
    if len(segments) < 2 or segments[-1] in PRIVATE_TLDS:
        return False

    # bare IPv4 addresses
    return not segments[-1].isdigit()


def is_valid_lookup_name(username: str) -> bool:
    """Accepts dotted names like `alice.id`, nothing that could escape the lookup path."""

    return len(username) <= 255 and regex_match(LOOKUP_NAME_REGEX, username) is not None


class HardenedHttp:
    def get_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(15, connect=5),
            headers={
                "Accept": "application/json",
                "User-Agent": "signin/0",
            },
        )


hardened_http = HardenedHttp()
