import math
import re
from collections.abc import Iterable

from supplier_onboarding.contracts.matching import (
    KnownSupplier,
    MatchFlag,
    NameMatch,
    WatchlistResult,
)

DUPLICATE_MATCH_THRESHOLD = 75
WATCHLIST_MATCH_THRESHOLD = 70
HIGH_SIMILARITY_THRESHOLD = 85
EXACT_MATCH_THRESHOLD = 95

_LEGAL_SUFFIXES = re.compile(
    r"\b(ltd|limited|plc|llp|inc|incorporated|corp|corporation|uk|group)\b"
)
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_company_name(name: str | None) -> str:
    if not name:
        return ""
    normalized = _LEGAL_SUFFIXES.sub("", name.lower())
    normalized = _NON_ALPHANUMERIC.sub("", normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit cost for insert, delete and substitute."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            substitution = previous[j - 1] + (char_a != char_b)
            current.append(min(previous[j] + 1, current[j - 1] + 1, substitution))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> int:
    longest = max(len(a), len(b))
    if longest == 0:
        return 100
    score = math.floor((1 - edit_distance(a, b) / longest) * 100 + 0.5)
    return max(0, min(100, score))


def classify_similarity(
    score: int,
    *,
    exact_threshold: int = EXACT_MATCH_THRESHOLD,
    high_threshold: int = HIGH_SIMILARITY_THRESHOLD,
) -> MatchFlag:
    if score >= exact_threshold:
        return MatchFlag.EXACT_MATCH
    if score >= high_threshold:
        return MatchFlag.HIGH_SIMILARITY
    return MatchFlag.POTENTIAL_MATCH


def _as_known_supplier(entry: KnownSupplier | str) -> KnownSupplier:
    if isinstance(entry, KnownSupplier):
        return entry
    return KnownSupplier(name=entry)


def find_matches(
    candidate_name: str,
    corpus: Iterable[KnownSupplier | str],
    threshold: int = DUPLICATE_MATCH_THRESHOLD,
) -> list[NameMatch]:
    normalized_candidate = normalize_company_name(candidate_name)
    if not normalized_candidate:
        return []

    matches: list[NameMatch] = []
    for entry in corpus:
        supplier = _as_known_supplier(entry)
        normalized_name = normalize_company_name(supplier.name)
        if not normalized_name:
            continue
        score = similarity(normalized_candidate, normalized_name)
        if score < threshold:
            continue
        matches.append(
            NameMatch(
                candidate_name=candidate_name,
                matched_name=supplier.name,
                normalized_candidate=normalized_candidate,
                normalized_match=normalized_name,
                similarity=score,
                flag_reason=classify_similarity(score),
                reference=supplier.reference,
            )
        )

    # sorted() is stable, so equal scores keep corpus order
    return sorted(matches, key=lambda match: match.similarity, reverse=True)


def check_watchlist(
    candidate_name: str,
    watchlist: Iterable[KnownSupplier | str],
    threshold: int = WATCHLIST_MATCH_THRESHOLD,
) -> WatchlistResult:
    matches = find_matches(candidate_name, watchlist, threshold=threshold)
    return WatchlistResult(
        flagged=bool(matches),
        matches=matches,
        highest_similarity=matches[0].similarity if matches else 0,
    )
