# src/parser/utils/dom_utils.py
from typing import List, Union

from bs4 import BeautifulSoup, Tag

Node = Union[BeautifulSoup, Tag]


def attr(tag: Tag, name: str) -> str:
    """
    Returns an attribute as a plain string ('' when absent).
    BeautifulSoup hands multi-valued attributes such as `rel` back as lists.
    """
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def head_sections(soup: BeautifulSoup) -> List[Node]:
    """
    All <head> elements of the document. Documents without one are searched
    as a whole, the way a browser would imply the head.
    """
    heads = soup.find_all("head")
    return heads or [soup]


def find_in_heads(soup: BeautifulSoup, name: str) -> List[Tag]:
    found: List[Tag] = []
    for head in head_sections(soup):
        found.extend(head.find_all(name))
    return found
