# taxonomy.py

import re
from typing import Iterable, List, Optional

from heuristics import STOPWORDS, tokenize
from schema_models import OutlineTopic


def _slug(s: str) -> str:
    s = (s or "").strip().lower()
    return re.sub(r"[^a-z0-9]+", "-", s).strip("-")


def _dedupe_preserve_order(seq):
    seen = set()
    out = []
    for x in seq:
        if x not in seen:
            out.append(x)
            seen.add(x)
    return out


def topic_id(title: str, parent_title: Optional[str] = None) -> str:
    """
    Stable slug for a topic; subtopics are scoped by their parent.
    Examples:
      "Light Reactions"                     -> "light-reactions"
      "Photosystem II" (in "Light Reactions") -> "light-reactions-photosystem-ii"
    """
    base = _slug(title)
    if parent_title:
        return f"{_slug(parent_title)}-{base}"
    return base


def outline_titles(topics: Iterable[OutlineTopic]) -> List[str]:
    titles: List[str] = []
    for t in topics:
        titles.append(t.topic)
        titles.extend(s.subtopic for s in t.subtopics)
    return titles


def outline_vocabulary(topics: Iterable[OutlineTopic], stopwords=STOPWORDS) -> List[str]:
    """
    Distinct content tokens taken from topic and subtopic names, in outline
    order. These are the terms coverage is measured against.
    """
    tokens = []
    for title in outline_titles(topics):
        tokens.extend(t for t in tokenize(title) if len(t) > 2 and t not in stopwords)
    return _dedupe_preserve_order(tokens)


def outline_pages(topics: Iterable[OutlineTopic]) -> List[int]:
    pages = set()
    for t in topics:
        pages.update(t.pages)
        for s in t.subtopics:
            pages.update(s.pages)
    return sorted(pages)
