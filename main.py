# main.py

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

from chunking import read_chunks
from config import LOG_LEVEL, LOG_TIMESTAMP
from errors import QuizError
from generate_quiz import generate_quiz
from llm_client import OpenAIEmbedder, OpenAIQuizGenerator
from schema_models import (
    Chunk,
    DIFFICULTIES,
    DocumentQuizContext,
    OutlineTopic,
    SubtopicQuizContext,
    TopicQuizContext,
)
from taxonomy import outline_pages

log = logging.getLogger("main")


def setup_logging(level: str = LOG_LEVEL, timestamp: bool = LOG_TIMESTAMP):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s" if timestamp
        else "%(levelname)s [%(name)s] %(message)s",
    )


def load_outline(path: Optional[Path]) -> List[OutlineTopic]:
    """Outline JSON: a list of topics, or {"topics": [...]}."""
    if path is None:
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("topics", [])
    if not isinstance(data, list):
        raise ValueError(f"Unsupported outline file shape in {path}: {type(data).__name__}")
    return [OutlineTopic.model_validate(t) for t in data]


def _parse_pages(value: Optional[str]) -> List[int]:
    if not value:
        return []
    return [int(p) for p in value.split(",") if p.strip()]


def _find_topic(outline: List[OutlineTopic], name: str) -> Optional[OutlineTopic]:
    for t in outline:
        if t.topic.lower() == name.lower():
            return t
    return None


def build_context(args, outline: List[OutlineTopic], chunks: List[Chunk]):
    common = {"question_count": args.count, "difficulty": args.difficulty}
    pages = _parse_pages(args.pages)

    if args.scope == "document":
        return DocumentQuizContext(
            document_title=args.title,
            all_topics=outline,
            all_pages=pages or sorted({c.page for c in chunks}),
            document_summary=args.summary or "",
            **common,
        )

    if not args.name:
        raise SystemExit(f"[Main] --name is required for {args.scope} scope")

    if args.scope == "topic":
        topic = _find_topic(outline, args.name)
        return TopicQuizContext(
            topic_name=args.name,
            topic_pages=pages or (outline_pages([topic]) if topic else []),
            all_subtopics=topic.subtopics if topic else [],
            topic_content=(topic.description if topic else ""),
            document_title=args.title,
            **common,
        )

    parent = _find_topic(outline, args.parent_topic) if args.parent_topic else None
    sub_pages = pages
    if not sub_pages and parent:
        sub_pages = next((s.pages for s in parent.subtopics if s.subtopic.lower() == args.name.lower()), [])
    return SubtopicQuizContext(
        subtopic_name=args.name,
        subtopic_pages=sub_pages,
        parent_topic_name=args.parent_topic or "",
        document_title=args.title,
        **common,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a quiz from page-tagged document chunks")
    parser.add_argument("--chunks", type=Path, required=True, help="JSON file with [{page, content}, ...]")
    parser.add_argument("--outline", type=Path, default=None, help="JSON file with the topic/subtopic outline")
    parser.add_argument("--scope", choices=("document", "topic", "subtopic"), default="document")
    parser.add_argument("--title", default="Document", help="Document title")
    parser.add_argument("--name", default=None, help="Topic or subtopic name (topic/subtopic scope)")
    parser.add_argument("--parent-topic", default=None, help="Parent topic name (subtopic scope)")
    parser.add_argument("--pages", default=None, help="Comma-separated page numbers to restrict to")
    parser.add_argument("--summary", default=None, help="Document summary (document scope)")
    parser.add_argument("--count", type=int, default=5)
    parser.add_argument("--difficulty", choices=DIFFICULTIES, default="medium")
    parser.add_argument("--quiz-id", default=None)
    parser.add_argument("--out", type=Path, default=Path("data") / "quiz.json")
    parser.add_argument("--no-embeddings", action="store_true", help="Skip the embedding-based diversity guard")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    chunks = read_chunks(args.chunks)
    outline = load_outline(args.outline)
    log.info(f"[Main] Loaded {len(chunks)} chunk(s) and {len(outline)} outline topic(s)")

    context = build_context(args, outline, chunks)
    embed = None if args.no_embeddings else OpenAIEmbedder()
    try:
        result = generate_quiz(context, chunks, OpenAIQuizGenerator(), embed=embed, quiz_id=args.quiz_id)
    except QuizError as e:
        log.error(f"[Main] {e}")
        return 1

    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(result.model_dump_json(indent=2), encoding="utf-8")
    log.info(f"[Main] {result.title}: {len(result.questions)} question(s) → {args.out}")
    if result.diagnostics is not None:
        log.info(f"[QA] Diagnostics: {result.diagnostics.model_dump(exclude_none=True)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
