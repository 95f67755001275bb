"""
security_sentry.py - Passive security header presence checks.

Usage:
    flags = security_header_flags(headers_dict)
"""

from typing import Any, Dict, Mapping


def security_header_flags(headers: Mapping[str, Any]) -> Dict[str, bool]:
    """
    Presence of HSTS, CSP and clickjacking protection.
    Clickjacking counts as protected with X-Frame-Options or a CSP frame-ancestors directive.
    """
    # Normalize headers to lowercase for easy lookup
    h_lower = {str(k).lower(): str(v) for k, v in (headers or {}).items()}

    csp = h_lower.get("content-security-policy", "")
    return {
        "hsts": bool(h_lower.get("strict-transport-security")),
        "csp": bool(csp),
        "clickjack_protected": bool(h_lower.get("x-frame-options")) or "frame-ancestors" in csp.lower(),
    }
