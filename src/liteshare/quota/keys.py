"""Tracking key derivation for upload identities."""

from collections.abc import Mapping

UNKNOWN_ADDRESS = "unknown"


def derive_key(user_id: str | None, origin_address: str) -> str:
    """
    Map an identity to its tracking key.

    A signed-in user is tracked by id alone, so the same quota follows them
    across networks. Anonymous traffic is tracked per origin address.

    Args:
        user_id: Durable user identifier, or None for guests
        origin_address: Network origin of the request

    Returns:
        Tracking key (``user:<id>`` or ``ip:<address>``)
    """
    if user_id:
        return f"user:{user_id}"
    return f"ip:{origin_address or UNKNOWN_ADDRESS}"


def client_address(
    headers: Mapping[str, str],
    peer_host: str | None = None,
    trust_proxy_headers: bool = True,
) -> str:
    """
    Resolve the origin address of a request.

    Prefers the first hop of ``X-Forwarded-For``, then ``X-Real-IP``, then
    the socket peer. Header lookups use lowercase names; Starlette's
    ``Headers`` is case-insensitive already.
    """
    if trust_proxy_headers:
        forwarded = headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

        real_ip = headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()

    return peer_host or UNKNOWN_ADDRESS
