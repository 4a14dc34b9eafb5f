"""
Small text helpers shared by the spec, price and review parsers.
"""

import re
from typing import Iterable, Optional

NUMBER = re.compile(r"\d+(?:\.\d+)?")


def extract_float(text: str) -> Optional[float]:
    """First number in text, ignoring thousands separators."""
    match = NUMBER.search(text.replace(",", ""))
    return float(match.group()) if match else None


def text_before(text: str, marker: str) -> str:
    index = text.find(marker)
    return text if index == -1 else text[:index]


def text_after(text: str, marker: str) -> str:
    index = text.find(marker)
    return text if index == -1 else text[index + len(marker):]


def contains_any(text: str, terms: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(term.lower() in lowered for term in terms)
