"""Identity keys that failures are counted against."""

from typing import Literal

from starlette.requests import Request

KeyMode = Literal["email", "ip", "both"]

EMAIL_PREFIX = "email:"
IP_PREFIX = "ip:"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def email_key(email: str) -> str:
    return f"{EMAIL_PREFIX}{normalize_email(email)}"


def ip_key(address: str) -> str:
    return f"{IP_PREFIX}{address.strip()}"


def identity_keys(email: str | None, address: str | None, mode: KeyMode = "both") -> list[str]:
    """Build the ledger keys for one login attempt.

    Raises:
        ValueError: If the mode leaves no usable key
    """
    keys: list[str] = []
    if mode in ("email", "both") and email:
        keys.append(email_key(email))
    if mode in ("ip", "both") and address:
        keys.append(ip_key(address))
    if not keys:
        raise ValueError(f"No identity key available for key mode '{mode}'")
    return keys


def parse_key(value: str) -> str:
    """Turn CLI input (an email, an address, or a prefixed key) into a ledger key."""
    value = value.strip()
    if value.startswith((EMAIL_PREFIX, IP_PREFIX)):
        return value
    if "@" in value:
        return email_key(value)
    return ip_key(value)


def client_address(request: Request, trust_proxy_headers: bool = True) -> str:
    """Resolve the originating address of a request.

    Order: first X-Forwarded-For entry, X-Real-IP, socket peer.
    """
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
