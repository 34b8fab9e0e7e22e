import pytest

from signin.identity.detect import ProbeOutcome, StaticDetector, UserAgentDetector
from signin.security import is_safe_url, is_valid_lookup_name

SAFARI = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15"
)
CHROME = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
CHROME_IOS = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) CriOS/124.0.6367.88 Mobile/15E148 Safari/604.1"
)
FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0"


@pytest.mark.parametrize(
    ("user_agent", "outcome"),
    [
        (SAFARI, ProbeOutcome.UNSUPPORTED),
        (CHROME_IOS, ProbeOutcome.UNSUPPORTED),
        (CHROME, ProbeOutcome.ABSENT),
        (FIREFOX, ProbeOutcome.ABSENT),
        (None, ProbeOutcome.ABSENT),
    ],
)
def test_user_agent_detector(user_agent, outcome):
    assert UserAgentDetector(user_agent).probe("blockstack:token") is outcome


def test_static_detector():
    for outcome in ProbeOutcome:
        assert StaticDetector(outcome).probe("blockstack:token") is outcome


@pytest.mark.parametrize(
    ("url", "safe"),
    [
        ("https://core.blockstack.org/v1/names/alice.id", True),
        ("http://core.blockstack.org/v1/names/alice.id", False),
        ("https://localhost/v1/names/alice.id", False),
        ("https://names.internal/alice.id", False),
        ("https://127.0.0.1/alice.id", False),
        ("https://core.blockstack.org:8443/alice.id", False),
        ("https://user:pw@core.blockstack.org/alice.id", False),
    ],
)
def test_is_safe_url(url, safe):
    assert is_safe_url(url) is safe


@pytest.mark.parametrize(
    ("name", "valid"),
    [
        ("alice.id", True),
        ("muneeb.id.blockstack", True),
        ("bob_2-x.id", True),
        ("../admin", False),
        ("alice.id?x=1", False),
        ("alice.id#frag", False),
        ("alice..id", False),
        ("", False),
    ],
)
def test_is_valid_lookup_name(name, valid):
    assert is_valid_lookup_name(name) is valid
