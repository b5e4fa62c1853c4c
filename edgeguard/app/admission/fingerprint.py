"""Browser fingerprint plausibility scoring.

The score (0-100) estimates how likely a request was issued by a real
browser. User agent classification runs as ordered first-match rules: a
known automation signature is a hard deny (score 0), a suspicious user agent
only withholds the base user agent points.
"""

from typing import List

from edgeguard.app.admission import patterns
from edgeguard.app.admission.models import (
    BrowserFingerprint,
    FingerprintAssessment,
    UserAgentOutcome,
)

USER_AGENT_POINTS = 30
LONG_USER_AGENT_POINTS = 5
LONG_USER_AGENT_LENGTH = 50
ACCEPT_LANGUAGE_POINTS = 15
GZIP_POINTS = 10
ACCEPT_POINTS = 10
SEC_FETCH_POINTS = 20
REFERER_POINTS = 10
DNT_POINTS = 5

MAX_SCORE = 100


class FingerprintScorer:
    """Scores header sets; independent of rate limiting and geolocation."""

    def __init__(
        self,
        automation_rules: List[patterns.UserAgentRule] = patterns.KNOWN_AUTOMATION_RULES,
        suspicious_rules: List[patterns.UserAgentRule] = patterns.SUSPICIOUS_UA_RULES,
    ):
        self.automation_rules = list(automation_rules)
        self.suspicious_rules = list(suspicious_rules)

    def score(self, fingerprint: BrowserFingerprint) -> int:
        return self.assess(fingerprint).score

    def assess(self, fingerprint: BrowserFingerprint) -> FingerprintAssessment:
        ua = fingerprint.user_agent
        score = 0

        if not ua:
            # An empty header scores like a missing one
            outcome = UserAgentOutcome.MISSING if ua is None else UserAgentOutcome.SUSPICIOUS
            matched = None if ua is None else "empty"
        else:
            matched = patterns.first_match(self.automation_rules, ua)
            if matched is not None:
                return FingerprintAssessment(
                    score=0, outcome=UserAgentOutcome.AUTOMATION, matched_rule=matched
                )

            matched = patterns.first_match(self.suspicious_rules, ua)
            if matched is not None:
                outcome = UserAgentOutcome.SUSPICIOUS
            else:
                outcome = UserAgentOutcome.PLAUSIBLE
                score += USER_AGENT_POINTS

            if len(ua) > LONG_USER_AGENT_LENGTH:
                score += LONG_USER_AGENT_POINTS

        if fingerprint.accept_language and len(fingerprint.accept_language) > 2:
            score += ACCEPT_LANGUAGE_POINTS

        if fingerprint.accept_encoding and "gzip" in fingerprint.accept_encoding:
            score += GZIP_POINTS

        if fingerprint.accept and (
            "text/html" in fingerprint.accept or "application/json" in fingerprint.accept
        ):
            score += ACCEPT_POINTS

        if fingerprint.has_sec_fetch:
            score += SEC_FETCH_POINTS

        if fingerprint.referer:
            score += REFERER_POINTS

        if fingerprint.dnt:
            score += DNT_POINTS

        return FingerprintAssessment(
            score=max(0, min(score, MAX_SCORE)),
            outcome=outcome,
            matched_rule=matched,
        )
