from abc import ABC, abstractmethod
from enum import Enum
from typing import override


class ProbeOutcome(Enum):
    DETECTED = "detected"
    ABSENT = "absent"
    UNSUPPORTED = "unsupported"


class Detector(ABC):
    @abstractmethod
    def probe(self, uri: str) -> ProbeOutcome:
        """Checks whether a native handler is registered for the scheme of `uri`.

        A detector answering DETECTED has already handed `uri` to the handler.
        """
        pass


class StaticDetector(Detector):
    def __init__(self, outcome: ProbeOutcome):
        self.outcome = outcome

    @override
    def probe(self, uri: str) -> ProbeOutcome:
        return self.outcome


class UserAgentDetector(Detector):
    """Guesses the probe outcome from the browser's User-Agent header.

    Custom scheme detection can't run on Safari or on any iOS browser. Every
    other browser is reported as ABSENT, installed handlers aren't visible
    from here.
    """

    def __init__(self, user_agent: str | None):
        self.user_agent = user_agent or ""

    @override
    def probe(self, uri: str) -> ProbeOutcome:
        if self.is_detection_unsupported():
            return ProbeOutcome.UNSUPPORTED
        return ProbeOutcome.ABSENT

    def is_detection_unsupported(self) -> bool:
        ua = self.user_agent
        if any(device in ua for device in ("iPhone", "iPad", "iPod")):
            return True
        if "Safari" not in ua:
            return False
        # chromium based browsers also advertise Safari
        return not any(name in ua for name in ("Chrome", "Chromium", "Edg", "OPR"))
