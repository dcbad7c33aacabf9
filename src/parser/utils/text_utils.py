# src/parser/utils/text_utils.py
import re
from typing import Iterable, List, Optional

_WHITESPACE_RUN = re.compile(r"(?:\s{2,}|[^\S ])")
_NON_WORD = re.compile(r"[^\w]", re.UNICODE)


def clean_tag_text(text: Optional[str]) -> str:
    """Collapses whitespace runs (and tabs/newlines) to single spaces and trims."""
    if not text:
        return ""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def keywords(text: Optional[str]) -> List[str]:
    """Lower-cases text, turns every non-word character into a separator and splits."""
    if not text:
        return []
    return [word for word in _NON_WORD.sub(" ", text.lower()).split(" ") if word]


def intersect(left: Iterable[str], right: Iterable[str]) -> List[str]:
    """Items of `left` (order and duplicates kept) that also occur in `right`."""
    right_set = set(right)
    return [item for item in left if item in right_set]


def difference(left: Iterable[str], right: Iterable[str]) -> List[str]:
    """Items of `left` (order and duplicates kept) that do not occur in `right`."""
    right_set = set(right)
    return [item for item in left if item not in right_set]
