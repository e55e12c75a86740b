import re
from typing import Mapping

from fastapi import Request

DEFAULT_CLIENT_ADDRESS = "127.0.0.1"
IP_MASK = "***"

_LAST_OCTET = re.compile(r"\.\d+$")


def resolve_client_address(headers: Mapping[str, str]) -> str:
    """
    Resolve the caller address from proxy headers.

    X-Forwarded-For wins (first hop only), then X-Real-IP, then loopback.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return DEFAULT_CLIENT_ADDRESS


def get_client_address(request: Request) -> str:
    return resolve_client_address(request.headers)


def mask_ip_address(ip_address: str) -> str:
    """Replace the last IPv4 octet with a mask token"""
    return _LAST_OCTET.sub(f".{IP_MASK}", ip_address)
