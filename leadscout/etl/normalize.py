"""Canonical comparison keys for business domains, names and addresses.

Every function here is total: ``None``, empty strings and garbage all come back
as ``""``, and an empty key never matches anything downstream.
"""

import re
from typing import Any, NamedTuple

import tldextract

from leadscout.models import BusinessRecord, NormalizedKey

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")
_HOST_RE = re.compile(r"^[a-z0-9-]+(?:\.[a-z0-9-]+)+$")
# Bundled public suffix snapshot only; never fetched at runtime.
_TLD_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_NAME_SUFFIX_RE = re.compile(r",?\s+(?:inc|llc|ltd|corp|corporation|co|company|limited)\.?$")

_UNIT_RE = re.compile(
    r"(?:^|[\s,]+)(?:suite|ste|apt|apartment|unit|floor|room|rm)\.?(?:\s+|\s*#\s*)[a-z0-9-]+\b"
    r"|(?:^|[\s,]+)fl\.?\s+[a-z0-9-]{1,4}\b"
    r"|(?:^|[\s,]+)#\s*[a-z0-9-]+\b"
)
_STREET_TYPES = {
    "street": "st",
    "avenue": "ave",
    "boulevard": "blvd",
    "road": "rd",
    "drive": "dr",
    "lane": "ln",
    "court": "ct",
    "place": "pl",
    "parkway": "pkwy",
    "highway": "hwy",
    "suite": "ste",
}
_STREET_TYPE_RE = re.compile(r"\b(" + "|".join(_STREET_TYPES) + r")\b")
_ZIP_RE = re.compile(r"\s*\d{5}(?:-\d{4})?$")
_COUNTRY_TOKENS = {"usa", "us", "united states", "united states of america"}
_WHITESPACE_RE = re.compile(r"\s+")


class CityState(NamedTuple):
    city: str
    state: str


def normalize_text(value: Any) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    if not value or not isinstance(value, str):
        return ""
    return _WHITESPACE_RE.sub(" ", value).strip().lower()


def normalize_domain(url: Any) -> str:
    """Reduce a URL, bare host or e-mail address to its registrable domain.

    >>> normalize_domain("https://www.Example.com/")
    'example.com'
    >>> normalize_domain("LLC")
    ''
    """
    text = normalize_text(url)
    if not text:
        return ""

    text = _SCHEME_RE.sub("", text)
    text = re.split(r"[/?#\s]", text, maxsplit=1)[0]
    if "@" in text:
        text = text.rsplit("@", 1)[1]
    text = text.split(":", 1)[0].strip(".")
    if text.startswith("www."):
        text = text[4:]

    if not _HOST_RE.match(text):
        return ""

    parts = _TLD_EXTRACT(text)
    if not parts.domain or not parts.suffix:
        return ""
    return f"{parts.domain}.{parts.suffix}"


def normalize_name(name: Any) -> str:
    text = normalize_text(name)
    if not text:
        return ""
    return _NAME_SUFFIX_RE.sub("", text).strip()


def normalize_address_core(address: Any) -> str:
    """Strip unit designators and fold street-type spellings to one form."""
    text = normalize_text(address)
    if not text:
        return ""

    text = _UNIT_RE.sub("", text)
    text = text.replace(".", "")
    text = _STREET_TYPE_RE.sub(lambda match: _STREET_TYPES[match.group(1)], text)
    text = re.sub(r"\s*,[\s,]*", ", ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip(" ,")


def extract_city_state(address: Any) -> CityState:
    """Pull ``(city, state)`` from a trailing ``..., City, State [ZIP][, Country]``."""
    core = normalize_address_core(address)
    parts = [part.strip() for part in core.split(",") if part.strip()]
    while parts and parts[-1] in _COUNTRY_TOKENS:
        parts.pop()
    if len(parts) < 2:
        return CityState("", "")

    state = _ZIP_RE.sub("", parts[-1]).strip()
    city = parts[-2]
    if not state or not state.replace(" ", "").isalpha():
        return CityState("", "")
    if not city or city[0].isdigit():
        return CityState("", "")
    return CityState(city, state)


def normalized_key(record: BusinessRecord) -> NormalizedKey:
    return NormalizedKey(
        domain=normalize_domain(record.website),
        name=normalize_name(record.name),
        address_core=normalize_address_core(record.location),
    )
