from __future__ import annotations

import re
from typing import NamedTuple, Optional
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit


SHORT_LINK_HOSTS = frozenset({"amzn.to", "a.co"})

_ASIN_PATTERNS = (
    re.compile(r"/dp/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})", re.IGNORECASE),
)


class ProductInfo(NamedTuple):
    name: str
    asin: Optional[str]


def _append_tag(url: str, tag: str) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}tag={tag}"


def is_amazon_host(hostname: str) -> bool:
    labels = (hostname or "").lower().split(".")
    return "amazon" in labels or "amzn" in labels


def add_affiliate_tag(url: str, tag: str) -> str:
    """
    Sets the Associates `tag` query parameter on Amazon product links.

    Short links (amzn.to, a.co) get the tag appended as-is since they
    redirect. Links to any other host are returned unchanged.
    """
    url = (url or "").strip()
    if not url:
        return ""
    tag = (tag or "").strip()
    if not tag:
        return url

    parts = urlsplit(url)
    if not parts.scheme:
        # "amazon.com/dp/..." pasted without a scheme
        hostname = urlsplit("//" + url).hostname or ""
        if hostname in SHORT_LINK_HOSTS or is_amazon_host(hostname):
            return _append_tag(url, tag)
        return url

    hostname = (parts.hostname or "").lower()
    if hostname in SHORT_LINK_HOSTS:
        return _append_tag(url, tag)
    if not is_amazon_host(hostname):
        return url

    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "tag"]
    query.append(("tag", tag))
    return urlunsplit(parts._replace(query=urlencode(query)))


def extract_product_info(url: str) -> ProductInfo:
    path = urlsplit((url or "").strip()).path

    asin = None
    for pattern in _ASIN_PATTERNS:
        m = pattern.search(path)
        if m:
            asin = m.group(1).upper()
            break

    name = ""
    segments = path.split("/")
    for marker in ("dp", "product"):
        if marker in segments:
            idx = segments.index(marker) - 1
            if idx >= 0 and segments[idx] and segments[idx] != "gp":
                slug = unquote(segments[idx]).replace("-", " ")
                name = re.sub(r"\b\w", lambda c: c.group(0).upper(), slug)
            break

    return ProductInfo(name=name, asin=asin)
