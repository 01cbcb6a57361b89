"""Ranked search results."""

from pydantic import BaseModel

from listings.schema import PropertyCandidate


class RankedResult(BaseModel):
    """A candidate with its derived relevance score."""

    candidate: PropertyCandidate
    score: float

    @property
    def id(self) -> str:
        return self.candidate.id
