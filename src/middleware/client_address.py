"""Source address extraction for admission control."""

from __future__ import annotations

from fastapi import Request

from config.settings import settings


def get_client_address(request: Request, trusted_proxy_count: int | None = None) -> str:
    """Extract the real client IP from behind trusted proxies.

    With ``trusted_proxy_count = N``, the rightmost N entries in
    ``X-Forwarded-For`` are proxy addresses.  The client address
    is the entry immediately before them, i.e. ``ips[-(N + 1)]``.

    If the header has fewer entries than expected we fall back to the
    leftmost entry, then ``X-Real-IP``, then the direct connection address.
    """
    proxies = settings.trusted_proxy_count if trusted_proxy_count is None else trusted_proxy_count

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ips = [ip.strip() for ip in forwarded_for.split(",") if ip.strip()]
        if ips:
            client_index = -(proxies + 1)
            if proxies > 0 and abs(client_index) <= len(ips):
                return ips[client_index]
            return ips[0]

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"
