"""String similarity for detecting near-duplicate link targets.

The composite score blends four measures, each in [0, 1]:
- Jaro-Winkler: character order, rewards shared prefixes
- Bigram Dice coefficient: character overlap, order-insensitive
- Token Jaccard: word overlap, ignores separators and Korean particles
- Containment: one string inside the other (only used when strong)
"""

from __future__ import annotations

import re

from .models import SimilarityScore

_TOKEN_SPLIT = re.compile(r"[\s\-_.,;:!?'\"()\[\]{}]+")
_ENDS_WITH_HANGUL = re.compile(r"[가-힣]$")
# Compound particles are tried before single-syllable ones
_COMPOUND_PARTICLES = re.compile(r"(으로|에서|에게|까지|부터|처럼|만큼|보다)$")
_SINGLE_PARTICLES = re.compile(r"[은는이가을를의에와과로]$")


def _jaro(s1: str, s2: str) -> float:
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    window = max(0, max(len(s1), len(s2)) // 2 - 1)
    s1_matches = [False] * len(s1)
    s2_matches = [False] * len(s2)

    matches = 0
    for i, ch in enumerate(s1):
        start = max(0, i - window)
        end = min(i + window + 1, len(s2))
        for j in range(start, end):
            if s2_matches[j] or ch != s2[j]:
                continue
            s1_matches[i] = True
            s2_matches[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    transpositions = 0
    k = 0
    for i, ch in enumerate(s1):
        if not s1_matches[i]:
            continue
        while not s2_matches[k]:
            k += 1
        if ch != s2[k]:
            transpositions += 1
        k += 1

    return (
        matches / len(s1) + matches / len(s2) + (matches - transpositions / 2) / matches
    ) / 3


def jaro_winkler_similarity(s1: str, s2: str, prefix_scale: float = 0.1) -> float:
    """Jaro similarity with a bonus for a common prefix of up to 4 characters."""
    jaro = _jaro(s1, s2)

    prefix = 0
    for a, b in zip(s1[:4], s2[:4]):
        if a != b:
            break
        prefix += 1

    return jaro + prefix * prefix_scale * (1 - jaro)


def _ngrams(text: str, n: int = 2) -> set[str]:
    normalized = text.lower().strip()
    if not normalized:
        return set()
    if len(normalized) < n:
        return {normalized}
    return {normalized[i : i + n] for i in range(len(normalized) - n + 1)}


def ngram_similarity(s1: str, s2: str, n: int = 2) -> float:
    """Dice coefficient over character n-grams (bigrams by default)."""
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    grams1 = _ngrams(s1, n)
    grams2 = _ngrams(s2, n)
    if not grams1 and not grams2:
        return 0.0

    return 2 * len(grams1 & grams2) / (len(grams1) + len(grams2))


def _strip_particle(token: str) -> str:
    if not _ENDS_WITH_HANGUL.search(token):
        return token
    if len(token) > 2:
        stripped = _COMPOUND_PARTICLES.sub("", token)
        if stripped != token:
            return stripped
    if len(token) > 1:
        return _SINGLE_PARTICLES.sub("", token)
    return token


def _tokenize(text: str) -> list[str]:
    return [_strip_particle(t) for t in _TOKEN_SPLIT.split(text.lower()) if t]


def token_overlap_similarity(s1: str, s2: str) -> float:
    """Jaccard similarity over word tokens."""
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    tokens1 = set(_tokenize(s1))
    tokens2 = set(_tokenize(s2))
    if not tokens1 or not tokens2:
        return 0.0

    return len(tokens1 & tokens2) / len(tokens1 | tokens2)


def containment_similarity(s1: str, s2: str) -> float:
    """Length ratio when one string contains the other, else 0."""
    n1 = s1.lower().strip()
    n2 = s2.lower().strip()

    if n1 == n2:
        return 1.0
    if not n1 or not n2:
        return 0.0
    if n2 in n1:
        return len(n2) / len(n1)
    if n1 in n2:
        return len(n1) / len(n2)
    return 0.0


def calculate_similarity(s1: str, s2: str) -> SimilarityScore:
    """Weighted blend of the individual measures."""
    jw = jaro_winkler_similarity(s1, s2)
    ng = ngram_similarity(s1, s2)
    to = token_overlap_similarity(s1, s2)
    ct = containment_similarity(s1, s2)

    if ct > 0.5:
        score = 0.3 * jw + 0.2 * ng + 0.2 * to + 0.3 * ct
    else:
        score = 0.4 * jw + 0.3 * ng + 0.3 * to

    return SimilarityScore(score=score, jaro_winkler=jw, ngram=ng, token_overlap=to)


def is_similar(s1: str, s2: str, threshold: float = 0.7) -> bool:
    return calculate_similarity(s1, s2).score >= threshold


def find_similar_pairs(
    strings: list[str], threshold: float = 0.7
) -> list[tuple[int, int, SimilarityScore]]:
    """All index pairs at or above threshold, most similar first."""
    pairs: list[tuple[int, int, SimilarityScore]] = []
    for i in range(len(strings)):
        for j in range(i + 1, len(strings)):
            similarity = calculate_similarity(strings[i], strings[j])
            if similarity.score >= threshold:
                pairs.append((i, j, similarity))

    pairs.sort(key=lambda pair: -pair[2].score)
    return pairs
