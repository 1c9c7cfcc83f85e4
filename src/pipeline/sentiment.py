import asyncio
import json
import logging
import re

from google import genai
from google.genai import errors as genai_errors

from src.config import settings
from src.models.review import RecurringIssue, Review, ReviewSentiment, ReviewWithSentiment

LOGGER = logging.getLogger("sentiment_classifier")

_VALID_SENTIMENTS = {"positive", "negative", "neutral"}
_JSON_ARRAY_REGEX = re.compile(r"\[[\s\S]*\]")
ISSUE_SAMPLE_SIZE = 80


class MissingCredentialError(ValueError):
    pass


class SentimentClassifier:
    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        *,
        batch_size: int | None = None,
        client: object | None = None,
    ) -> None:
        self.model_name = model_name or settings.gemini_model
        self.fallback_models = ["gemini-flash-latest", "gemini-2.5-flash"]
        self.batch_size = max(1, batch_size or settings.sentiment_batch_size)

        if client is not None:
            self.client = client
            return

        resolved_key = (api_key if api_key is not None else settings.gemini_api_key).strip()
        if not resolved_key:
            raise MissingCredentialError(
                "GEMINI_API_KEY is not set. Export it or add it to .env before classifying reviews."
            )
        self.client = genai.Client(api_key=resolved_key)

    async def classify(self, reviews: list[Review]) -> list[ReviewWithSentiment]:
        results: list[ReviewWithSentiment] = []

        for start in range(0, len(reviews), self.batch_size):
            batch = reviews[start : start + self.batch_size]
            prompt = self._build_prompt(batch)
            response_text = await asyncio.to_thread(self._generate_content, prompt)
            labels = self._parse_labels(response_text, batch)
            results.extend(
                ReviewWithSentiment(review=review, sentiment=sentiment) for review, sentiment in zip(batch, labels)
            )

        return results

    async def detect_recurring_issues(self, items: list[ReviewWithSentiment]) -> list[RecurringIssue]:
        """Group repeated complaints, requests and recommendations across classified reviews.

        Only the first ``ISSUE_SAMPLE_SIZE`` reviews are sent. Example indexes in the
        response are mapped back to review ids; an unparseable response yields ``[]``.
        """
        if not items:
            return []

        sampled = items[:ISSUE_SAMPLE_SIZE]
        prompt = self._build_issues_prompt(sampled)
        response_text = await asyncio.to_thread(self._generate_content, prompt)

        try:
            match = _JSON_ARRAY_REGEX.search(response_text or "")
            data = json.loads(match.group(0) if match else response_text)
        except (TypeError, ValueError):
            LOGGER.warning("Unparseable recurring-issues response, returning no issues")
            return []

        if not isinstance(data, list):
            return []

        issues: list[RecurringIssue] = []
        for item in data:
            if not isinstance(item, dict) or not item.get("label"):
                continue
            example_ids: list[str] = []
            for raw_index in item.get("exampleIndexes") or []:
                try:
                    position = int(raw_index) - 1
                except (TypeError, ValueError):
                    continue
                if 0 <= position < len(sampled):
                    example_ids.append(sampled[position].review.id)
            try:
                frequency = int(item.get("frequency") or 0)
            except (TypeError, ValueError):
                frequency = 0
            issues.append(
                RecurringIssue(
                    label=str(item["label"]).strip(),
                    description=str(item.get("description") or "").strip(),
                    frequency=max(0, frequency),
                    example_review_ids=example_ids,
                )
            )
        return issues

    def _build_issues_prompt(self, sampled: list[ReviewWithSentiment]) -> str:
        lines = [
            f"{idx}. ({item.sentiment}) {self._single_line(item.review.text)[:600]}"
            for idx, item in enumerate(sampled, start=1)
        ]
        return (
            "You analyze reviews to find recurring requests, complaints, and recommendations.\n"
            "Return ONLY a JSON array with this exact schema:\n"
            '[{"label": "short title", "description": "1-2 sentence explanation", '
            '"frequency": number, "exampleIndexes": [numbers]}]\n'
            "Reviews:\n" + "\n".join(lines)
        )

    def _build_prompt(self, batch: list[Review]) -> str:
        lines = [
            f"{idx}. [{review.rating} stars] {self._single_line(review.text)[:800]}"
            for idx, review in enumerate(batch, start=1)
        ]
        return (
            "You classify customer reviews as positive, negative, or neutral "
            "based on sentiment towards the business.\n"
            "Return ONLY a JSON array with this exact schema:\n"
            '[{"index": number, "sentiment": "positive|negative|neutral"}]\n'
            "Reviews:\n" + "\n".join(lines)
        )

    def _generate_content(self, prompt: str) -> str:
        candidates = list(dict.fromkeys([self.model_name, *self.fallback_models]))
        last_error: Exception | None = None

        for model_name in candidates:
            try:
                response = self.client.models.generate_content(
                    model=model_name,
                    contents=prompt,
                )
                return self._extract_text(response)
            except genai_errors.ClientError as exc:
                last_error = exc
                if exc.code == 404:
                    continue
                raise

        if last_error:
            raise last_error
        return ""

    def _parse_labels(self, response_text: str, batch: list[Review]) -> list[ReviewSentiment]:
        labels: list[ReviewSentiment] = [self._sentiment_from_rating(review) for review in batch]

        try:
            match = _JSON_ARRAY_REGEX.search(response_text or "")
            data = json.loads(match.group(0) if match else response_text)
        except (TypeError, ValueError):
            LOGGER.warning("Unparseable sentiment response, using rating-derived labels for %s reviews", len(batch))
            return labels

        if not isinstance(data, list):
            return labels

        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                position = int(item.get("index", 0)) - 1
            except (TypeError, ValueError):
                continue
            sentiment = str(item.get("sentiment", "")).lower().strip()
            if 0 <= position < len(batch) and sentiment in _VALID_SENTIMENTS:
                labels[position] = sentiment  # type: ignore[assignment]

        return labels

    def _single_line(self, text: str) -> str:
        return re.sub(r"\s+", " ", text).strip()

    def _sentiment_from_rating(self, review: Review) -> ReviewSentiment:
        if review.rating >= 4:
            return "positive"
        if review.rating <= 2:
            return "negative"
        return "neutral"

    def _extract_text(self, response: object) -> str:
        texts: list[str] = []
        candidates = getattr(response, "candidates", None) or []
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            if content is None:
                continue
            for part in getattr(content, "parts", None) or []:
                text = getattr(part, "text", None)
                if text:
                    texts.append(str(text).strip())
        return "\n".join([text for text in texts if text]).strip()
