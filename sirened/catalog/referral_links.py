"""
Referral links shown on a book page ("Buy on ...").

Links are stored enhanced with the retailer domain and a favicon URL so
clients do not have to resolve either.
"""

import re
from typing import Optional
from urllib.parse import urlparse, urlencode

RETAILERS = ("Amazon", "Barnes & Noble", "IndieBound", "Custom")

DEFAULT_FAVICON_SERVICE = "https://www.google.com/s2/favicons"
FAVICON_SIZE = 64

_DOMAIN_FALLBACK = re.compile(r"(?:https?://)?(?:www\.)?([^/?#\s:]+\.[^/?#\s:]+)", re.IGNORECASE)


def normalize_retailer(retailer: Optional[str]) -> str:
    """Known retailer name, or "Custom"."""
    for known in RETAILERS:
        if retailer and retailer.strip().lower() == known.lower():
            return known
    return "Custom"


def extract_domain(url: str) -> str:
    """
    Hostname of ``url`` without a leading "www.".

    Bare domains ("amazon.com/dp/1") are accepted. When the URL cannot be
    parsed, the first dotted token is used, and failing that the input.
    """
    candidate = url.strip()
    if not re.match(r"^[a-z][a-z0-9+.-]*://", candidate, re.IGNORECASE):
        candidate = f"https://{candidate}"

    try:
        hostname = urlparse(candidate).hostname
    except ValueError:
        hostname = None

    if hostname and "." in hostname:
        return hostname[4:] if hostname.startswith("www.") else hostname

    match = _DOMAIN_FALLBACK.search(url)
    if match:
        return match.group(1).lower()
    return url


def favicon_url(url: str, service: str = DEFAULT_FAVICON_SERVICE) -> str:
    domain = extract_domain(url)
    return f"{service}?{urlencode({'domain': domain, 'sz': FAVICON_SIZE})}"


def enhance_referral_link(link: dict, service: str = DEFAULT_FAVICON_SERVICE) -> dict:
    """Copy of ``link`` with ``retailer``, ``domain`` and ``favicon_url`` filled in."""
    url = (link.get("url") or "").strip()
    if not url:
        return dict(link)

    enhanced = dict(link)
    enhanced["url"] = url
    enhanced["retailer"] = normalize_retailer(link.get("retailer"))
    enhanced["domain"] = extract_domain(url)
    enhanced["favicon_url"] = favicon_url(url, service)
    return enhanced


def enhance_referral_links(links: list[dict], service: str = DEFAULT_FAVICON_SERVICE) -> list[dict]:
    return [enhance_referral_link(link, service) for link in links or []]
