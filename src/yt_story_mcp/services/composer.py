"""Turns a transcript into a 30 second, six beat short-form script.

Everything here is a pure function of its input: no I/O, no clock, no
randomness, so the same transcript always yields the same bundle.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from yt_story_mcp.types import ScriptBundle

DEFAULT_PRODUCT = "Lipidz"
WORDS_PER_SECOND = 3
HIGHLIGHT_COUNT = 3

_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
_WORD = re.compile(r"\w+", re.UNICODE)
_DIGIT = re.compile(r"\d")
_COMPETITOR_TERMS = re.compile(
    r"\b(?:pills?|capsules?|supplements?|tablets?|comprimidos?|c[áa]psulas?|suplementos?|rem[ée]dios?)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Beat:
    label: str
    start: int
    end: int
    keywords: frozenset[str]

    @property
    def word_budget(self) -> int:
        return (self.end - self.start) * WORDS_PER_SECOND


BEATS = (
    Beat("Hook", 0, 3, frozenset({
        "you", "your", "imagine", "secret", "why", "never", "stop",
        "você", "voce", "imagina", "segredo", "nunca", "pare",
    })),
    Beat("Problem", 3, 6, frozenset({
        "problem", "pain", "struggle", "difficult", "hard", "tired", "fat", "cholesterol", "weight",
        "problema", "dor", "difícil", "dificil", "cansado", "cansaço", "gordura", "colesterol", "peso",
    })),
    Beat("Solution", 6, 10, frozenset({
        "solution", "use", "try", "help", "helps", "answer", "how",
        "solução", "solucao", "usar", "ajuda", "resposta", "como",
    })),
    Beat("Proof", 10, 18, frozenset({
        "study", "studies", "research", "result", "results", "proven", "percent",
        "estudo", "estudos", "pesquisa", "resultado", "resultados", "comprovado", "prova",
    })),
    Beat("Transformation", 18, 27, frozenset({
        "change", "life", "feel", "energy", "better", "transform", "new",
        "mudança", "mudar", "vida", "sentir", "energia", "melhor", "transformar", "novo", "nova",
    })),
    Beat("CTA", 27, 30, frozenset({
        "link", "bio", "challenge", "now", "today", "start", "click", "follow", "join",
        "desafio", "agora", "hoje", "comece", "clique", "siga",
    })),
)


def _placeholders(product: str) -> dict[str, str]:
    return {
        "Hook": f"A bold opening line adapted for {product}",
        "Problem": "The core problem from the video",
        "Solution": f"Use {product}, the orally dissolving film applied on the tongue",
        "Proof": "The results mentioned in the video",
        "Transformation": "The change or lifestyle it brings",
        "CTA": "21-day challenge | link in bio",
    }


def split_sentences(text: str) -> list[str]:
    normalized = re.sub(r"\s+", " ", text or "").strip()
    if not normalized:
        return []
    return [sentence for sentence in _SENTENCE_BREAK.split(normalized) if sentence]


def substitute_terms(sentence: str, product: str) -> str:
    return _COMPETITOR_TERMS.sub(lambda _: product, sentence)


def score_sentence(sentence: str, beat: Beat, product: str) -> int:
    words = [word.lower() for word in _WORD.findall(sentence)]
    keywords = beat.keywords | {product.lower()} if beat.label == "Solution" else beat.keywords
    score = 2 * sum(1 for word in words if word in keywords)
    if 6 <= len(words) <= 25:
        score += 1
    if beat.label == "Hook" and sentence.endswith("?"):
        score += 1
    if beat.label == "Proof" and (_DIGIT.search(sentence) or "%" in sentence):
        score += 1
    return score


def _clip(sentence: str, budget: int) -> str:
    words = sentence.split(" ")
    if len(words) <= budget:
        return sentence
    return " ".join(words[:budget]).rstrip(",;:") + "..."


def _prompt(product: str, highlights: list[str]) -> str:
    lines = [
        f"Write a 30-second short-form video script for {product} in six beats "
        "(Hook, Problem, Solution, Proof, Transformation, CTA).",
        "Keep the voice of these source sentences:",
    ]
    if highlights:
        lines.extend(f"- {sentence}" for sentence in highlights)
    else:
        lines.append("- (no transcript available)")
    return "\n".join(lines)


def compose(text: str, product: str = DEFAULT_PRODUCT) -> ScriptBundle:
    sentences = [substitute_terms(sentence, product) for sentence in split_sentences(text)]
    scores = [[score_sentence(sentence, beat, product) for beat in BEATS] for sentence in sentences]
    placeholders = _placeholders(product)

    used: set[int] = set()
    chosen: list[str] = []
    for beat_index, beat in enumerate(BEATS):
        candidates = [index for index in range(len(sentences)) if index not in used]
        if not candidates:
            chosen.append(placeholders[beat.label])
            continue
        best = max(candidates, key=lambda index: (scores[index][beat_index], -index))
        used.add(best)
        chosen.append(_clip(sentences[best], beat.word_budget))

    beats = tuple(f"{beat.label}: {content}" for beat, content in zip(BEATS, chosen))

    script_lines = []
    for beat, content in zip(BEATS, chosen):
        label = f"{beat.label} ({product})" if beat.label == "Solution" else beat.label
        script_lines.append(f"[{beat.start:02d}-{beat.end:02d}] {label}: {content}")

    ranked = sorted(range(len(sentences)), key=lambda index: (-sum(scores[index]), index))
    highlights = [sentences[index] for index in sorted(ranked[:HIGHLIGHT_COUNT])]

    return ScriptBundle(
        beats=beats,
        script="\n".join(script_lines),
        source_prompt=_prompt(product, highlights),
    )
