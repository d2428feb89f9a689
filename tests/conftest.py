"""
Shared fixtures: synthetic chunks, a deterministic embedder and a scripted generator.
"""
import pytest

from schema_models import Chunk, DocumentQuizContext, OutlineTopic


def make_chunks(pages=range(1, 11)):
    """One chunk per page, each comfortably above the 120-char snippet floor."""
    return [
        Chunk(page=p, content=("Page %d covers the idea of item%d in depth. " % (p, p)) * 4)
        for p in pages
    ]


class FakeEmbedder:
    """One-hot vector per distinct text: identical texts collide, anything else is orthogonal."""

    def __init__(self, dims=64):
        self.dims = dims
        self.index = {}
        self.calls = []

    def __call__(self, text):
        self.calls.append(text)
        slot = self.index.setdefault(text, len(self.index) % self.dims)
        vec = [0.0] * self.dims
        vec[slot] = 1.0
        return vec


class ScriptedGenerator:
    """Returns the given payloads in order; records every (prompt, schema, system) call."""

    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.calls = []

    def __call__(self, prompt, response_schema, system_prompt):
        self.calls.append((prompt, response_schema, system_prompt))
        payload = self.payloads[min(len(self.calls), len(self.payloads)) - 1]
        if isinstance(payload, Exception):
            raise payload
        return payload

    @property
    def prompts(self):
        return [c[0] for c in self.calls]


def question(prompt, qid="", correct="B", explanation="Explained by the material.", pages=(1,)):
    return {
        "id": qid,
        "prompt": prompt,
        "options": {"A": "First choice", "B": "Second choice", "C": "Third choice", "D": "Fourth choice"},
        "correct": correct,
        "explanation": explanation,
        "difficulty": "medium",
        "sourcePages": list(pages),
    }


BIOLOGY_OUTLINE = [
    OutlineTopic(topic="Photosynthesis", description="How plants capture light.", pages=[1, 2, 3]),
    OutlineTopic(topic="Respiration", description="How cells release energy.", pages=[4, 5, 6]),
    OutlineTopic(topic="Ecosystems", description="How organisms interact.", pages=[7, 8, 9, 10]),
]

GOOD_PROMPTS = [
    "Which pigment absorbs light energy during photosynthesis in plant leaves?",
    "Why does cellular respiration release energy stored in glucose molecules?",
    "What role do decomposers play in nutrient cycling within ecosystems?",
    "Suppose a greenhouse doubles its carbon dioxide level; how would photosynthesis rates change?",
    "A farmer notices crops wilting at noon; which respiration process explains the energy drop?",
]


@pytest.fixture
def chunks():
    return make_chunks()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def document_context():
    return DocumentQuizContext(
        document_title="Biology Basics",
        all_topics=BIOLOGY_OUTLINE,
        question_count=5,
    )
