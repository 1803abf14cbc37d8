import ipaddress
from urllib.parse import urlparse
from typing import Tuple

BLOCKED_HOSTS = {"localhost", "0.0.0.0"}


def normalize_url(url: str) -> Tuple[str, bool]:

    url = url.strip()

    parsed = urlparse(url)

    if not parsed.scheme:
        normalized = f"https://{url}"
        return normalized, True

    return url, False


def _is_private_host(hostname: str) -> bool:
    if hostname in BLOCKED_HOSTS or hostname.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return address.is_loopback or address.is_private or address.is_unspecified


def validate_url(url: str) -> Tuple[bool, str, str]:
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized_url, _ = normalize_url(url)

    try:
        parsed = urlparse(normalized_url)

        if parsed.scheme not in ["http", "https"]:
            return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

        if not parsed.hostname:
            return False, normalized_url, "Invalid URL format: missing domain"

        if _is_private_host(parsed.hostname.lower()):
            return False, normalized_url, "Invalid URL: local and private addresses cannot be analyzed"

        return True, normalized_url, ""

    except ValueError as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"
