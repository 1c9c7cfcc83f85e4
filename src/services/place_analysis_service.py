from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from src.models.review import RecurringIssue, ReportSummary, Review, ReviewWithSentiment
from src.pipeline.report import ReportBuilder
from src.pipeline.sentiment import SentimentClassifier
from src.scraper.google_maps import GoogleMapsReviewScraper

LOGGER = logging.getLogger("place_analysis_service")

ProgressCallback = Callable[[dict[str, Any]], Awaitable[None] | None]


class PlaceAnalysisService:
    _SUPPORTED_SOURCE_MODES = {"scraper", "places_api"}

    def __init__(
        self,
        scraper: GoogleMapsReviewScraper | None = None,
        classifier: SentimentClassifier | None = None,
        report_builder: ReportBuilder | None = None,
    ) -> None:
        self.scraper = scraper or GoogleMapsReviewScraper.from_settings()
        self._classifier = classifier
        self.report_builder = report_builder or ReportBuilder()

    @property
    def classifier(self) -> SentimentClassifier:
        # Built lazily so fetching reviews works without the LLM credential.
        if self._classifier is None:
            self._classifier = SentimentClassifier()
        return self._classifier

    async def fetch_reviews(self, url: str, source_mode: str | None = None) -> list[Review]:
        mode = self._resolve_source_mode(source_mode)
        if mode == "places_api":
            LOGGER.warning("Source mode places_api is not available yet, falling back to scraper.")
        return await self.scraper.fetch_reviews(url)

    async def analyze_place(
        self,
        url: str,
        source_mode: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        mode = self._resolve_source_mode(source_mode)
        await self._emit_progress(progress_callback, "analysis_started", "Analysis started.", {"url": url, "mode": mode})

        reviews = await self.fetch_reviews(url, source_mode=mode)
        await self._emit_progress(
            progress_callback,
            "scrape_completed",
            "Scraping finished.",
            {"review_count": len(reviews)},
        )

        reviews_with_sentiment: list[ReviewWithSentiment] = []
        recurring_issues: list[RecurringIssue] = []
        if reviews:
            reviews_with_sentiment = await self.classifier.classify(reviews)
            await self._emit_progress(
                progress_callback,
                "sentiment_completed",
                "Sentiment classification finished.",
                {"classified_count": len(reviews_with_sentiment)},
            )

            recurring_issues = await self.classifier.detect_recurring_issues(reviews_with_sentiment)
            await self._emit_progress(
                progress_callback,
                "issues_completed",
                "Recurring issue detection finished.",
                {"issue_count": len(recurring_issues)},
            )

        report: ReportSummary = self.report_builder.build(reviews_with_sentiment, recurring_issues=recurring_issues)
        await self._emit_progress(progress_callback, "done", "Analysis completed.", {"total_reviews": report.total_reviews})

        return {
            "mode": mode,
            "report": report.model_dump(mode="json"),
            "reviews": [item.model_dump(mode="json") for item in reviews_with_sentiment],
        }

    def _resolve_source_mode(self, source_mode: str | None) -> str:
        normalized = (source_mode or "scraper").strip().lower().replace("-", "_")
        if normalized == "placesapi":
            normalized = "places_api"
        if normalized not in self._SUPPORTED_SOURCE_MODES:
            raise ValueError(f"Unknown source mode '{source_mode}'. Supported: scraper | places_api")
        return normalized

    async def _emit_progress(
        self,
        callback: ProgressCallback | None,
        stage: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        if callback is None:
            return
        payload = {"stage": stage, "message": message, "data": data or {}}
        try:
            maybe_awaitable = callback(payload)
            if asyncio.iscoroutine(maybe_awaitable):
                await maybe_awaitable
        except Exception:
            # Progress callback errors must not affect core flow.
            LOGGER.debug("Progress callback failed at stage=%s", stage, exc_info=True)
