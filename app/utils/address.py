"""
Address normalization used as the dedup key for CRM leads and GenieNet deals.

Unit / apartment / suite designators are dropped, so two units in the same
building collapse onto one key. Dedup is at the building/lot level; this is a
product decision pending confirmation, see DESIGN.md.
"""
import re

# Full word -> canonical abbreviation. Abbreviations map to themselves so that
# either spelling converges on the same token.
STREET_ABBREVIATIONS = {
    "street": "st",
    "avenue": "ave",
    "av": "ave",
    "boulevard": "blvd",
    "drive": "dr",
    "road": "rd",
    "place": "pl",
    "lane": "ln",
    "circle": "cir",
    "court": "ct",
    "terrace": "ter",
    "highway": "hwy",
    "parkway": "pkwy",
    "square": "sq",
    "trail": "trl",
    "way": "way",
    "apartment": "apt",
    "suite": "ste",
    "unit": "unit",
    "north": "n",
    "south": "s",
    "east": "e",
    "west": "w",
    "northeast": "ne",
    "northwest": "nw",
    "southeast": "se",
    "southwest": "sw",
}

_WORD_RE = re.compile(r"[a-z0-9]+")
_HASH_UNIT_RE = re.compile(r"#\s*[a-z0-9-]+")
_UNIT_RE = re.compile(r"\b(?:apt|unit|ste)\b[\s#]*[a-z0-9-]+")
_INVALID_CHARS_RE = re.compile(r"[^a-z0-9,\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_COMMA_RE = re.compile(r"\s*,[\s,]*")


def _abbreviate(match: re.Match) -> str:
    word = match.group(0)
    return STREET_ABBREVIATIONS.get(word, word)


def _normalize_once(value: str) -> str:
    value = value.lower()
    value = value.replace(".", "")
    value = _WORD_RE.sub(_abbreviate, value)
    value = _UNIT_RE.sub(" ", value)
    value = _HASH_UNIT_RE.sub(" ", value)
    value = _INVALID_CHARS_RE.sub(" ", value)
    value = _WHITESPACE_RE.sub(" ", value)
    value = _COMMA_RE.sub(", ", value)
    return value.strip(" ,")


def normalize_address(address: str) -> str:
    """
    Lower-case, abbreviate street types and directionals, drop unit designators
    and punctuation other than commas. normalize_address(normalize_address(x))
    always equals normalize_address(x).
    """
    if not address:
        return ""
    normalized = _normalize_once(address)
    # Removing a unit can expose new adjacent tokens, so settle on a fixed point
    for _ in range(5):
        again = _normalize_once(normalized)
        if again == normalized:
            break
        normalized = again
    return normalized


def cache_key_for_address(address: str) -> str:
    """Slug form used as a cache key: '123 Main St' -> '123-main-st'."""
    slug = _WHITESPACE_RE.sub("-", (address or "").lower().strip())
    return re.sub(r"[^a-z0-9-]", "", slug)
