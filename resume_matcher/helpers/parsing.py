import re
from typing import Any, List, Mapping, Optional

# Fields holding the whole résumé as one string, tried in order
FULL_TEXT_FIELDS = ("text", "content", "resume_text")

# Section fields concatenated when no full-text field is present
SECTION_FIELDS = ("summary", "experience", "education", "skills", "description")

TRUNCATION_MARKER = "\n...[truncated]"


def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x).strip()
    return x


def _as_text(x: Any) -> str:
    if x is None:
        return ""
    if isinstance(x, str):
        return x.strip()
    if isinstance(x, Mapping):
        return " ".join(t for t in (_as_text(v) for v in x.values()) if t)
    if isinstance(x, (list, tuple)):
        return " ".join(t for t in (_as_text(v) for v in x) if t)
    return str(x).strip()


def _section_text(extracted: Mapping[str, Any]) -> str:
    parts: List[str] = []
    for field in SECTION_FIELDS:
        value = extracted.get(field)
        if not value:
            continue
        text = _as_text(value)
        if text:
            parts.append(text)
    return " ".join(parts)


def extract_resume_text(extracted_data: Any) -> Optional[str]:
    """Normalize a candidate's extracted data into a single résumé string.

    ``extracted_data`` is either the raw résumé string or a mapping produced
    by the extraction step. For mappings the first non-empty full-text field
    wins (``text``, ``content``, ``resume_text``); otherwise the section
    fields are concatenated. Returns ``None`` when nothing usable remains.
    """
    if not extracted_data:
        return None

    if isinstance(extracted_data, str):
        text = extracted_data.strip()
        return text or None

    if not isinstance(extracted_data, Mapping):
        return None

    for field in FULL_TEXT_FIELDS:
        value = extracted_data.get(field)
        if value:
            text = _as_text(value)
            if text:
                return text

    return _section_text(extracted_data) or None


def truncate_text(text: str, max_chars: int, marker: str = TRUNCATION_MARKER) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker
