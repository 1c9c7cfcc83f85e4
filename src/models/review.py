from typing import Any, Literal

from pydantic import BaseModel, Field

ReviewSentiment = Literal["positive", "negative", "neutral"]


class ReviewCandidate(BaseModel):
    id: str
    author_name: str | None = None
    rating: int = 0
    text: str = ""
    date: str | None = None
    language: str | None = None
    raw_source_meta: dict[str, Any] = Field(default_factory=dict)

    def is_acceptable(self) -> bool:
        return bool(self.text.strip()) and 1 <= self.rating <= 5

    def to_review(self) -> "Review":
        return Review(**self.model_dump())


class Review(BaseModel):
    id: str = Field(min_length=1)
    author_name: str | None = None
    rating: int = Field(ge=1, le=5)
    text: str = Field(min_length=1)
    date: str | None = None
    language: str | None = None
    raw_source_meta: dict[str, Any] = Field(default_factory=dict)


class PlaceLocation(BaseModel):
    url: str


class ReviewWithSentiment(BaseModel):
    review: Review
    sentiment: ReviewSentiment


class RecurringIssue(BaseModel):
    label: str
    description: str = ""
    frequency: int = 0
    example_review_ids: list[str] = Field(default_factory=list)


class SentimentCounts(BaseModel):
    positive: int = 0
    negative: int = 0
    neutral: int = 0


class ReportSummary(BaseModel):
    place_name: str | None = None
    total_reviews: int = Field(default=0, ge=0)
    avg_rating: float = 0.0
    ratings_histogram: dict[str, int] = Field(default_factory=lambda: {str(i): 0 for i in range(1, 6)})
    sentiment_counts: SentimentCounts = Field(default_factory=SentimentCounts)
    recurring_issues: list[RecurringIssue] = Field(default_factory=list)
    notes: str | None = None
