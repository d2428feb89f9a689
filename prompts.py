# prompts.py

from schema_models import (
    DocumentQuizContext,
    SubtopicQuizContext,
    TopicQuizContext,
)

QUIZ_SYSTEM = """You are an expert AI study tutor. Generate quiz questions that are:
1. Directly related to the provided content
2. Appropriately difficult for the scope
3. Educational and engaging
4. Include practical applications
5. Have clear explanations
6. Written in the SAME LANGUAGE as the document (questions, options, explanations)

OUTPUT CONTRACT (STRICT):
- Return ONLY a single JSON object matching the response schema. No prose, no code fences.
- Every question has exactly 4 options keyed A, B, C, D and exactly one correct letter.
- "sourcePages" lists the page numbers the question is grounded in.
- Generate exactly the requested number of questions.

Base every question ONLY on the content in the prompt. Never write generic questions about the topic.
"""

BASE_PROMPT = """You are creating contextual quiz questions for a learner. Every question must test understanding of the specific content shown below, not general knowledge about the subject.

Key principles:
- Questions must be directly related to the provided content
- Use conversational, engaging language in the same language as the document
- Vary difficulty appropriately for the requested level
- Include practical applications when possible
- Provide clear explanations that teach, not just confirm
- Reference specific page numbers naturally"""

SUBTOPIC_USER = """{base}

CONTEXT: Subtopic Quiz
- Document: "{document_title}"
- Subtopic: "{subtopic_name}"
- Parent Topic: "{parent_topic_name}"
- Pages: {pages}
- Question Count: {question_count}
- Difficulty: {difficulty}

CONTENT TO BASE QUESTIONS ON:
{subtopic_content}

RAW DOCUMENT CONTENT:
{raw_content}

Generate {question_count} focused questions about "{subtopic_name}". Questions should test understanding of the specific concepts covered in this subtopic.
Base your questions ONLY on the content shown above."""

TOPIC_USER = """{base}

CONTEXT: Topic Quiz
- Document: "{document_title}"
- Topic: "{topic_name}"
- Pages: {pages}
- Question Count: {question_count}
- Difficulty: {difficulty}

SUBTOPICS COVERED:
{subtopics}

TOPIC CONTENT:
{topic_content}

RAW DOCUMENT CONTENT:
{raw_content}

Generate {question_count} comprehensive questions about "{topic_name}". Questions should cover all subtopics and test overall understanding of the topic.
Base your questions ONLY on the content shown above."""

DOCUMENT_USER = """{base}

CONTEXT: Document Quiz
- Document: "{document_title}"
- Pages: {pages}
- Question Count: {question_count}
- Difficulty: {difficulty}

TOPICS COVERED:
{topics}

DOCUMENT SUMMARY:
{document_summary}

TOPIC DIGESTS:
{digests}

SOURCE EXCERPTS (sampled across the whole document):
{raw_content}

QUALITY RULES (answers are checked automatically):
- Test the ideas in the content, never the layout: no questions about sections, chapters, headings, paragraphs or where something appears.
- Never use "All of the above" or "None of the above" as an option.
- At least 40% of the questions must be applied scenarios (a concrete situation where the learner must use an idea).
- Spread questions across the topics listed above; do not cluster on one topic.
- Do not copy sentences from the excerpts into the question prompt; rephrase and ask about meaning.
- Every question must be distinct from the others.

Generate {question_count} comprehensive questions about "{document_title}". Questions should test overall mastery of the document across all topics."""

REGENERATION_NOTE = """

REGENERATION NOTE (attempt {attempt}): the previous set of questions was rejected by automatic quality checks: {reason}.
Produce a completely new set of {question_count} questions that fixes these problems while following every rule above."""


def _pages(pages) -> str:
    return ", ".join(str(p) for p in pages) or "n/a"


def _or_placeholder(text: str, placeholder: str = "(none provided)") -> str:
    return text.strip() if text and text.strip() else placeholder


def _document_topics(context: DocumentQuizContext) -> str:
    lines = []
    for t in context.all_topics:
        lines.append(f"- {t.topic} (pages {_pages(t.pages)})")
        for s in t.subtopics:
            lines.append(f"  - {s.subtopic} (pages {_pages(s.pages)})")
    return "\n".join(lines) or "(no outline available)"


def _document_digests(context: DocumentQuizContext) -> str:
    lines = [f"- [{s.kind}] {s.title}: {s.summary}" for s in context.compressed_summaries]
    return "\n".join(lines) or "(none)"


def build_quiz_prompt(context) -> str:
    """Scope-specific user prompt for the generation collaborator."""
    if isinstance(context, SubtopicQuizContext):
        return SUBTOPIC_USER.format(
            base=BASE_PROMPT,
            document_title=context.document_title or "Unknown Document",
            subtopic_name=context.subtopic_name,
            parent_topic_name=context.parent_topic_name,
            pages=_pages(context.subtopic_pages),
            question_count=context.question_count,
            difficulty=context.difficulty,
            subtopic_content=_or_placeholder(context.subtopic_content),
            raw_content=_or_placeholder(context.raw_content),
        )
    if isinstance(context, TopicQuizContext):
        subtopics = "\n".join(
            f"- {s.subtopic} (pages {_pages(s.pages)})" for s in context.all_subtopics
        ) or "(none)"
        return TOPIC_USER.format(
            base=BASE_PROMPT,
            document_title=context.document_title or "Unknown Document",
            topic_name=context.topic_name,
            pages=_pages(context.topic_pages),
            question_count=context.question_count,
            difficulty=context.difficulty,
            subtopics=subtopics,
            topic_content=_or_placeholder(context.topic_content),
            raw_content=_or_placeholder(context.raw_content),
        )
    if isinstance(context, DocumentQuizContext):
        return DOCUMENT_USER.format(
            base=BASE_PROMPT,
            document_title=context.document_title,
            pages=_pages(context.all_pages),
            question_count=context.question_count,
            difficulty=context.difficulty,
            topics=_document_topics(context),
            document_summary=_or_placeholder(context.document_summary),
            digests=_document_digests(context),
            raw_content=_or_placeholder(context.raw_content),
        )
    raise ValueError(f"Unsupported quiz scope: {getattr(context, 'scope', type(context).__name__)}")


def append_regeneration_note(prompt: str, attempt: int, reason: str, question_count: int) -> str:
    return prompt + REGENERATION_NOTE.format(
        attempt=attempt, reason=reason or "quality checks failed", question_count=question_count
    )
