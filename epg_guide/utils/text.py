"""
Text normalization utilities

Free-text cleanup for display fields and comparison keys for channel names.
"""
import re
import unicodedata

_WHITESPACE_RE = re.compile(r'\s+')
_NON_ALNUM_RE = re.compile(r'[^a-z0-9]+')

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def clean_text(text: str | None, max_length: int = 500) -> str:
    """Collapse whitespace and cap length of a display string"""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.strip())[:max_length]


def strip_diacritics(text: str) -> str:
    """Remove combining marks after canonical decomposition ('Canción' -> 'Cancion')"""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_name(value: str) -> str:
    """
    Comparison key for channel names

    Lowercases, strips diacritics, collapses non-alphanumeric runs into a single
    space and trims. 'La 1 HD' -> 'la 1 hd', 'Télé-Québec' -> 'tele quebec'.
    """
    lowered = strip_diacritics(value.lower())
    return _NON_ALNUM_RE.sub(" ", lowered).strip()


def slugify_channel_id(name: str) -> str:
    """Channel id from a display title: lowercase, non-alphanumeric runs -> '_'"""
    return _NON_ALNUM_RE.sub("_", name.lower()).strip("_")


def simple_hash(text: str) -> str:
    """
    Short non-cryptographic hash rendered in base 36

    32-bit rolling hash (h * 31 + c) over the string's characters; only used to
    keep derived program ids short.
    """
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return to_base36(abs(value))


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))
