"""Domain guard: decides whether a URL is inside the trusted root domain.

The root domain is derived once from the seed URL and every URL admitted into
a scan result or an archive must be that domain or one of its subdomains.
Matching is anchored on a leading dot, so ``evilapple.com`` is never admitted
for ``apple.com``.

Root derivation uses a last-two-labels heuristic, which is wrong for
multi-label public suffixes such as ``co.uk``. It is passed in as a policy so
a smarter one can replace it.
"""

from typing import Callable, Optional
from urllib.parse import urlparse

RootDomainPolicy = Callable[[str], str]


def last_two_labels(hostname: str) -> str:
    parts = hostname.split(".")
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return hostname


def _hostname(url: str) -> Optional[str]:
    try:
        host = urlparse(url.strip()).hostname
    except (ValueError, AttributeError):
        return None
    if not host:
        return None
    return host.rstrip(".").lower()


def normalize_root_domain(domain: str) -> str:
    root = (domain or "").strip().lower()
    if root.startswith("www."):
        root = root[4:]
    return root.rstrip(".")


def is_allowed(candidate_url: str, allowed_root_domain: str) -> bool:
    """True if the URL's host is the root domain or a subdomain of it.

    Fails closed: unparsable URLs, URLs without a host and an empty root are
    all rejected.
    """
    root = normalize_root_domain(allowed_root_domain)
    if not root:
        return False

    host = _hostname(candidate_url)
    if host is None:
        return False

    return host == root or host.endswith("." + root)


def derive_root_domain(seed_url: str, policy: RootDomainPolicy = last_two_labels) -> str:
    """Root domain for a seed URL, e.g. investor.apple.com -> apple.com.

    Returns "" when the URL has no usable host. Callers must abort on "".
    """
    host = _hostname(seed_url)
    if not host:
        return ""
    return policy(host)
