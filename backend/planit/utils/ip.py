from __future__ import annotations

from flask import Request

_SINGLE_VALUE_HEADERS = ("CF-Connecting-IP", "X-Real-IP")


def get_client_ip(request: Request, trust_headers: bool = True) -> str | None:
    """Best guess at the peer address of a socket handshake, for logs only."""
    if trust_headers:
        for header in _SINGLE_VALUE_HEADERS:
            value = (request.headers.get(header) or "").strip()
            if value:
                return value

        forwarded = [p.strip() for p in (request.headers.get("X-Forwarded-For") or "").split(",")]
        forwarded = [p for p in forwarded if p]
        if forwarded:
            return forwarded[0]

    return request.remote_addr or None
