"""Input normalization for names, requirements and emails.

Names feed into assignment tokens, so two spellings that only differ in
whitespace or Unicode composition must normalize to the same string.
"""
from __future__ import annotations

import re
import unicodedata


def normalize_whitespace(text: str) -> str:
    """Normalize whitespace: collapse multiple spaces, remove leading/trailing."""
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def normalize_name(text: str) -> str:
    """Normalize a person name or requirement title.

    Applies NFC composition and whitespace collapsing. Case is preserved.
    """
    if not text:
        return ""
    text = unicodedata.normalize('NFC', text)
    return normalize_whitespace(text)


def normalize_email(email: str | None) -> str | None:
    """Lowercase and trim an email address; blank values become ``None``."""
    if email is None:
        return None
    email = email.strip().lower()
    return email or None
