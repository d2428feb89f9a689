# chunking.py
import json
import math
import re
from pathlib import Path
from typing import Any, Iterable, List, Sequence

from config import CHARS_PER_TOKEN
from schema_models import Chunk

_WS_RE = re.compile(r"\s+")
# Sentence boundary: whitespace that follows ., ! or ?
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def normalize_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def approx_token_count(text: str) -> int:
    """Length-based proxy for prompt cost; not an encoder count."""
    return math.ceil(len(normalize_whitespace(text)) / CHARS_PER_TOKEN)


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text or "") if s.strip()]


def sort_chunks(chunks: Iterable[Chunk]) -> List[Chunk]:
    """Page order; on the same page the shorter chunk comes first."""
    return sorted(chunks, key=lambda c: (c.page, len(c.content)))


def chunks_for_pages(chunks: Iterable[Chunk], pages: Iterable[int]) -> List[Chunk]:
    wanted = set(pages)
    return [c for c in chunks if c.page in wanted]


def format_page_blocks(chunks: Iterable[Chunk]) -> str:
    return "\n\n".join(f"Page {c.page}: {c.content}" for c in chunks)


def chunk_preview(chunks: Sequence[Chunk], head_chars: int = 100):
    preview = []
    for ch in chunks:
        head = normalize_whitespace(ch.content)[:head_chars]
        preview.append({"page": ch.page, "text": head})
    return preview


def _coerce_chunk(obj: Any) -> Chunk:
    page = obj.get("page", obj.get("pageNumber"))
    return Chunk(page=int(page), content=str(obj.get("content") or ""))


def read_chunks(path: Path) -> List[Chunk]:
    """
    Load chunks exported by the ingestion side. Accepts either a bare JSON
    list of {page, content} objects or an object with a "chunks" list.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("chunks", [])
    if not isinstance(data, list):
        raise ValueError(f"Unsupported chunk file shape in {path}: {type(data).__name__}")
    return [_coerce_chunk(obj) for obj in data if isinstance(obj, dict)]
