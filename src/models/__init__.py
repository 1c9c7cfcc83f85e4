from src.models.review import (
    PlaceLocation,
    RecurringIssue,
    ReportSummary,
    Review,
    ReviewCandidate,
    ReviewWithSentiment,
    SentimentCounts,
)

__all__ = [
    "PlaceLocation",
    "RecurringIssue",
    "Review",
    "ReviewCandidate",
    "ReviewWithSentiment",
    "ReportSummary",
    "SentimentCounts",
]
