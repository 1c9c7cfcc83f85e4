from statistics import mean

from src.models.review import RecurringIssue, ReportSummary, ReviewWithSentiment, SentimentCounts


class ReportBuilder:
    def build(
        self,
        items: list[ReviewWithSentiment],
        place_name: str | None = None,
        recurring_issues: list[RecurringIssue] | None = None,
    ) -> ReportSummary:
        if not items:
            return ReportSummary(place_name=place_name, notes="No reviews found.")

        ratings = [item.review.rating for item in items]

        ratings_histogram = {str(i): 0 for i in range(1, 6)}
        for rating in ratings:
            star = min(max(int(rating), 1), 5)
            ratings_histogram[str(star)] += 1

        sentiment_counts = SentimentCounts()
        for item in items:
            setattr(sentiment_counts, item.sentiment, getattr(sentiment_counts, item.sentiment) + 1)

        return ReportSummary(
            place_name=place_name,
            total_reviews=len(items),
            avg_rating=round(mean(ratings), 2),
            ratings_histogram=ratings_histogram,
            sentiment_counts=sentiment_counts,
            recurring_issues=list(recurring_issues or []),
        )
