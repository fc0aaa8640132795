from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class MatchFlag(StrEnum):
    EXACT_MATCH = "EXACT_MATCH"
    HIGH_SIMILARITY = "HIGH_SIMILARITY"
    POTENTIAL_MATCH = "POTENTIAL_MATCH"


class KnownSupplier(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    reference: str | None = Field(
        default=None,
        description="Submission id or supplier number of the existing record.",
    )


class NameMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate_name: str
    matched_name: str
    normalized_candidate: str
    normalized_match: str
    similarity: int
    flag_reason: MatchFlag
    reference: str | None = None


class WatchlistResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    flagged: bool
    matches: list[NameMatch] = Field(default_factory=list)
    highest_similarity: int = 0


class DuplicateCheckReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_name: str
    duplicate_matches: list[NameMatch] = Field(default_factory=list)
    watchlist: WatchlistResult = Field(default_factory=lambda: WatchlistResult(flagged=False))

    @property
    def flagged(self) -> bool:
        return bool(self.duplicate_matches) or self.watchlist.flagged
