import re
from typing import Any, List, Optional

# Word characters plus the dots, colons and bangs that appear inside qualified
# binding names such as "FinanceCore.irr", "Base.:+" or "push!".
_TOKEN_RE = re.compile(r"[\w.:!]+", re.UNICODE)
_SLUG_DROP_RE = re.compile(r"[^\w\s.\-]", re.UNICODE)


def strip_nulls(value: Any) -> Any:
    """
    Recursively remove keys with value None from dictionaries.

    Lists are preserved, but their elements are also cleaned.
    """
    if isinstance(value, dict):
        return {k: strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_nulls(v) for v in value]
    return value


def match_text(value: str, keyword: str, match_type: Optional[str]) -> bool:
    """
    Apply field-filter matching rules to a single value.
    """
    if keyword is None:
        return False
    keyword = keyword or ""
    match = (match_type or "Substring").strip() or "Substring"

    # Exact is case-sensitive; everything else we treat as case-insensitive.
    if match == "Exact":
        return value == keyword

    v = value.lower()
    k = keyword.lower()

    if match == "CaseInsensitive":
        return v == k
    if match == "StartsWith":
        return v.startswith(k)
    if match == "Substring":
        return k in v
    if match == "Wildcard":
        pattern = "^" + re.escape(keyword).replace(r"\*", ".*").replace(r"\?", ".") + "$"
        return re.search(pattern, value, flags=re.IGNORECASE | re.DOTALL) is not None

    raise ValueError(f"Unsupported match type: {match_type}")


def tokenize(text: str) -> List[str]:
    """
    Split text into lowercase search tokens.

    Trailing punctuation is trimmed so that "rate." and "rate" are the same
    token. Qualified names also yield their parts: "FinanceCore.irr" gives
    "financecore.irr", "financecore" and "irr".
    """
    tokens = []
    for raw in _TOKEN_RE.findall(text or ""):
        token = raw.strip(".:").lower()
        if not token:
            continue
        tokens.append(token)
        if "." in token or ":" in token:
            tokens.extend(part for part in re.split(r"[.:]+", token) if part)
    return tokens


def slugify(title: str) -> str:
    """
    Turn a heading into a URL anchor: keep word characters, dots and dashes,
    collapse whitespace runs into a single dash.
    """
    cleaned = _SLUG_DROP_RE.sub("", title.strip())
    return re.sub(r"\s+", "-", cleaned)


def make_excerpt(text: str, terms: List[str], width: int = 120) -> str:
    """
    Return roughly `width` characters of `text` centred on the first term found.
    """
    flat = " ".join((text or "").split())
    if len(flat) <= width:
        return flat

    lowered = flat.lower()
    first = -1
    for term in terms:
        pos = lowered.find(term)
        if pos != -1 and (first == -1 or pos < first):
            first = pos

    if first == -1:
        return flat[:width].rstrip() + "..."

    start = max(0, first - width // 3)
    end = min(len(flat), start + width)
    start = max(0, end - width)
    snippet = flat[start:end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(flat):
        snippet = snippet + "..."
    return snippet
