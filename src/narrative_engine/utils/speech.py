"""
Speech statistics for dialogue voice checks.

Computes the surface numbers a stored voice profile can be compared
against: complex-word ratio, informal markers, contractions, exclamation
density and sentence length.
"""

import re
import statistics
from typing import Dict, List

from ..config import COMPLEX_WORD_MIN_LENGTH

WORD_PATTERN = re.compile(r"\b[\w']+\b")
SENTENCE_SPLIT = re.compile(r"[.!?]+")
CONTRACTION_PATTERN = re.compile(r"\b\w+'(?:t|s|d|ll|ve|re|m)\b", re.IGNORECASE)
INFORMAL_PATTERN = re.compile(
    r"\b(gonna|wanna|gotta|kinda|sorta|yeah|yep|nah|nope|dunno|lemme|ain't)\b",
    re.IGNORECASE,
)
HEDGE_PATTERN = re.compile(r"\b(perhaps|rather|indeed|quite|shall|whom|therefore)\b", re.IGNORECASE)


def analyze_speech(text: str) -> Dict:
    """
    Analyze one piece of dialogue.

    Args:
        text: Spoken text, quotes optional

    Returns:
        Dict with word_count, complex_words, complex_ratio, informal_markers,
        contraction_ratio, formal_markers, exclamations, exclamation_ratio,
        avg_sentence_length
    """
    if not text or not isinstance(text, str):
        return _empty_analysis()

    words = WORD_PATTERN.findall(text)
    word_count = len(words)
    if word_count == 0:
        return _empty_analysis()

    complex_words = [w for w in words if len(w) >= COMPLEX_WORD_MIN_LENGTH]
    informal: List[str] = sorted({m.lower() for m in INFORMAL_PATTERN.findall(text)})
    contractions = len(CONTRACTION_PATTERN.findall(text))
    sentences = [s for s in SENTENCE_SPLIT.split(text) if s.strip()]
    sentence_lengths = [len(WORD_PATTERN.findall(s)) for s in sentences] or [word_count]
    exclamations = text.count("!")

    return {
        "word_count": word_count,
        "complex_words": len(complex_words),
        "complex_ratio": round(len(complex_words) / word_count, 3),
        "informal_markers": informal,
        "contraction_ratio": round(contractions / word_count, 3),
        "formal_markers": len(HEDGE_PATTERN.findall(text)),
        "exclamations": exclamations,
        "exclamation_ratio": round(exclamations / max(1, len(sentences)), 3),
        "avg_sentence_length": round(statistics.mean(sentence_lengths), 2),
    }


def _empty_analysis() -> Dict:
    return {
        "word_count": 0,
        "complex_words": 0,
        "complex_ratio": 0.0,
        "informal_markers": [],
        "contraction_ratio": 0.0,
        "formal_markers": 0,
        "exclamations": 0,
        "exclamation_ratio": 0.0,
        "avg_sentence_length": 0.0,
    }
