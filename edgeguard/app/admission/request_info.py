"""Extraction of client IP and fingerprints from request headers."""

from typing import Mapping

from edgeguard.app.admission.models import BrowserFingerprint, NetworkFingerprint

LOOPBACK_IP = "127.0.0.1"


def get_client_ip(headers: Mapping[str, str], default: str = LOOPBACK_IP) -> str:
    """Resolve the client IP from proxy headers.

    Precedence: first X-Forwarded-For entry, X-Real-IP, CF-Connecting-IP,
    then ``default``.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip

    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip

    return default


def extract_browser_fingerprint(headers: Mapping[str, str]) -> BrowserFingerprint:
    return BrowserFingerprint(
        user_agent=headers.get("user-agent"),
        accept_language=headers.get("accept-language"),
        accept_encoding=headers.get("accept-encoding"),
        accept=headers.get("accept"),
        sec_fetch_dest=headers.get("sec-fetch-dest"),
        sec_fetch_mode=headers.get("sec-fetch-mode"),
        sec_fetch_site=headers.get("sec-fetch-site"),
        referer=headers.get("referer"),
        dnt=headers.get("dnt"),
    )


def extract_network_fingerprint(headers: Mapping[str, str]) -> NetworkFingerprint:
    return NetworkFingerprint(
        ip=get_client_ip(headers, default="unknown"),
        via_proxy=headers.get("via") is not None,
        protocol=headers.get("x-forwarded-proto") or "unknown",
        connection_type=headers.get("connection"),
    )
