"""Name and date normalization for Second Site person headings.

`split_name` is a pure function: the cleanup steps run in the order listed in
`NAME_CLEANUP_RULES`, then the cleaned text is split into first/middle/last.
"""
from __future__ import annotations

import re
from typing import Dict, List, Pattern, Tuple

UNKNOWN = "Unknown"

UNKNOWN_FIRST_RE = re.compile(r"^\(?\?\)")
UNKNOWN_LAST_RE = re.compile(r"\(?\?\)$")

# (rule name, pattern, replacement), applied top to bottom.
NAME_CLEANUP_RULES: List[Tuple[str, Pattern[str], str]] = [
    ("parenthetical", re.compile(r"\([^)]*\)"), ""),
    ("question_mark", re.compile(r"\?"), ""),
    ("son_of", re.compile(r"\bson of\s+.+$", re.I), ""),
    ("of_place_state", re.compile(r"\bof\s+[A-Z][^,]+(?:,\s*[A-Z]{2})?$", re.I), ""),
    ("of_place", re.compile(r"\bof\s+[A-Z][^,]+$", re.I), ""),
    ("the_epithet", re.compile(r"\bthe\s+\w+$", re.I), ""),
    ("suffix", re.compile(r"\b(?:Jr|Sr|III|II|IV|V)\b\.?", re.I), ""),
    ("title", re.compile(r"\b(?:Dr|Rev|Col|Capt|Sir|Lady|Lord)\b\.?", re.I), ""),
    ("trailing_comma", re.compile(r",\s*$"), ""),
    ("whitespace", re.compile(r"\s+"), " "),
]

PUNCT_ONLY_RE = re.compile(r"^[^\w]+$")

MOJIBAKE_CHARS = ("\ufffd", "\u00e1")


def clean_name(full_name: str) -> str:
    cleaned = full_name
    for _name, pattern, repl in NAME_CLEANUP_RULES:
        cleaned = pattern.sub(repl, cleaned)
    return cleaned.strip()


def _tokens(text: str) -> List[str]:
    return [t for t in text.split() if t and not PUNCT_ONLY_RE.match(t)]


def split_name(full_name: str) -> Dict[str, str]:
    """Split a display name into firstName/middleName/lastName.

    Only keys with a value are returned. "Last, First Middle" is recognized by
    the comma; otherwise tokens are read as "First Middle... Last". A lone
    token is a surname unless an unknown marker "(?)" shows which side is
    missing, in which case that side becomes "Unknown".
    """
    text = (full_name or "").strip()
    unknown_first = bool(UNKNOWN_FIRST_RE.match(text))
    unknown_last = bool(UNKNOWN_LAST_RE.search(text))

    cleaned = clean_name(text)
    parts = [p.strip() for p in cleaned.split(",") if p.strip()]

    if len(parts) >= 2:
        last = " ".join(_tokens(parts[0]))
        given = _tokens(parts[1])
        out: Dict[str, str] = {}
        if given:
            out["firstName"] = given[0]
        if len(given) > 1:
            out["middleName"] = " ".join(given[1:])
        if last:
            out["lastName"] = last
        return out

    words = _tokens(cleaned)
    if not words:
        return {}
    if len(words) == 1:
        if unknown_last:
            return {"firstName": words[0], "lastName": UNKNOWN}
        if unknown_first:
            return {"firstName": UNKNOWN, "lastName": words[0]}
        return {"lastName": words[0]}
    if len(words) == 2:
        return {"firstName": words[0], "lastName": words[1]}
    return {
        "firstName": words[0],
        "middleName": " ".join(words[1:-1]),
        "lastName": words[-1],
    }


def clean_date_string(date_str: str) -> str:
    """Normalize a date cell: NBSP to space, mojibake removed, whitespace collapsed."""
    s = (date_str or "").replace("\u00a0", " ")
    for ch in MOJIBAKE_CHARS:
        s = s.replace(ch, "")
    return re.sub(r"\s+", " ", s).strip()
