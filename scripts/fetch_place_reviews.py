import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.config import settings
from src.scraper.errors import ReviewExtractionError
from src.scraper.google_maps import GoogleMapsReviewScraper
from src.services.place_analysis_service import PlaceAnalysisService


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Open a Google Maps place page in headless Chromium, open the reviews panel, "
            "scroll the review list and print the extracted reviews as JSON."
        )
    )
    parser.add_argument("url", help="Direct Google Maps place URL (https://www.google.com/maps/place/...).")
    parser.add_argument(
        "--source-mode",
        choices=("scraper", "places_api"),
        default="scraper",
        help="Review source (default: scraper). places_api falls back to the scraper.",
    )
    parser.add_argument(
        "--max-reviews",
        type=int,
        default=settings.scraper_max_reviews,
        help=f"Maximum number of reviews to collect, at most 500 (default: {settings.scraper_max_reviews}).",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Run Chromium with a visible window (default: headless).",
    )
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="Classify sentiment and print a report summary (requires GEMINI_API_KEY).",
    )
    parser.add_argument(
        "--output",
        default="",
        help="Optional output JSON file path.",
    )
    return parser.parse_args()


async def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    scraper = GoogleMapsReviewScraper.from_settings(
        headless=not args.headed,
        max_reviews=args.max_reviews,
    )
    service = PlaceAnalysisService(scraper=scraper)

    try:
        if args.analyze:
            payload = await service.analyze_place(args.url, source_mode=args.source_mode)
        else:
            reviews = await service.fetch_reviews(args.url, source_mode=args.source_mode)
            payload = {
                "mode": args.source_mode,
                "review_count": len(reviews),
                "reviews": [review.model_dump(mode="json") for review in reviews],
            }
    except (ValueError, ReviewExtractionError) as exc:
        print(f"Extraction failed: {exc}", file=sys.stderr)
        return 1

    rendered = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.output:
        output_path = Path(args.output)
        if not output_path.is_absolute():
            output_path = (PROJECT_ROOT / output_path).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(rendered, encoding="utf-8")
        print(f"Saved reviews to: {output_path}")

    print(rendered)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
