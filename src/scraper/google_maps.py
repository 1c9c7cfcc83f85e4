from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from time import time
from typing import Any, AsyncIterator, Callable

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Locator,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from src.config import Settings, settings
from src.models.review import PlaceLocation, Review
from src.scraper.accumulator import MAX_REVIEWS, ReviewAccumulator
from src.scraper.errors import (
    ContainerNotFoundError,
    NavigationFailedError,
    NavigationTimeoutError,
    PanelNotFoundError,
    ReviewLoadingError,
)
from src.scraper.extractor import ReviewCardExtractor
from src.scraper.location import parse_place_location, with_language
from src.scraper.selectors import (
    CONSENT_BUTTON_LABELS,
    REVIEWS_ENTRY_REGEX,
    REVIEWS_TEXT_REGEX,
    SELECTOR_PATTERNS,
)

LOGGER = logging.getLogger("google_maps_scraper")

NAVIGATION_TIMEOUT_MS = 60_000
CONTAINER_PROBE_TIMEOUT_MS = 5_000
SCROLL_STEP_PX = 1000
SCROLL_SETTLE_MS = 2_000
PANEL_SETTLE_MS = 3_000
INTERSTITIAL_SETTLE_MS = 1_500
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/133.0.0.0 Safari/537.36"
)

_OUTER_HTML_JS = "(el) => el.outerHTML"
_SCROLL_BY_JS = """
(el, step) => {
    const before = el.scrollTop;
    el.scrollBy(0, step);
    if (el.scrollTop === before) {
        el.scrollTop = Math.min(before + step, el.scrollHeight);
    }
    return Math.round(el.scrollTop);
}
"""

PanelStrategy = Callable[[Page], Locator]


def _reviews_tab_by_role(page: Page) -> Locator:
    return page.get_by_role("tab", name=REVIEWS_ENTRY_REGEX)


def _reviews_button_by_role(page: Page) -> Locator:
    return page.get_by_role("button", name=REVIEWS_ENTRY_REGEX)


def _reviews_by_visible_text(page: Page) -> Locator:
    return page.locator(", ".join(SELECTOR_PATTERNS["CLICKABLE"])).filter(has_text=REVIEWS_TEXT_REGEX)


def _reviews_by_legacy_hook(page: Page) -> Locator:
    return page.locator(", ".join(SELECTOR_PATTERNS["REVIEWS_LEGACY_HOOK"]))


def _reviews_by_class_markers(page: Page) -> Locator:
    return page.locator(", ".join(SELECTOR_PATTERNS["REVIEWS_CLASS_MARKERS"]))


def _reviews_by_generic_attributes(page: Page) -> Locator:
    return page.locator(", ".join(SELECTOR_PATTERNS["REVIEWS_GENERIC"]))


# Most specific/stable first. The first strategy with a match wins.
PANEL_STRATEGIES: tuple[tuple[str, PanelStrategy], ...] = (
    ("role_tab", _reviews_tab_by_role),
    ("role_button", _reviews_button_by_role),
    ("visible_text", _reviews_by_visible_text),
    ("legacy_hook", _reviews_by_legacy_hook),
    ("class_markers", _reviews_by_class_markers),
    ("generic_attributes", _reviews_by_generic_attributes),
)


@dataclass
class ExtractionSession:
    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page


class GoogleMapsReviewScraper:
    mode = "scraper"

    def __init__(
        self,
        *,
        headless: bool = True,
        browser_channel: str | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport_width: int = 1366,
        viewport_height: int = 900,
        locale: str = "en-US",
        accept_language: str = "en-US,en;q=0.9",
        language: str = "en",
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        container_timeout_ms: int = CONTAINER_PROBE_TIMEOUT_MS,
        max_reviews: int = MAX_REVIEWS,
        scroll_step_px: int = SCROLL_STEP_PX,
        scroll_settle_ms: int = SCROLL_SETTLE_MS,
        panel_settle_ms: int = PANEL_SETTLE_MS,
        interstitial_settle_ms: int = INTERSTITIAL_SETTLE_MS,
        extra_chromium_args: list[str] | None = None,
        debug_screenshots_dir: str | None = None,
        extractor: ReviewCardExtractor | None = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self._headless = headless
        self._browser_channel = (browser_channel or "").strip() or None
        self._user_agent = user_agent
        self._viewport = {"width": viewport_width, "height": viewport_height}
        self._locale = locale
        self._accept_language = accept_language
        self._language = language
        self._navigation_timeout_ms = navigation_timeout_ms
        self._container_timeout_ms = container_timeout_ms
        self._max_reviews = min(max(1, max_reviews), MAX_REVIEWS)
        self._scroll_step_px = scroll_step_px
        self._scroll_settle_ms = max(0, scroll_settle_ms)
        self._panel_settle_ms = max(0, panel_settle_ms)
        self._interstitial_settle_ms = max(0, interstitial_settle_ms)
        self._extra_chromium_args = list(extra_chromium_args or [])
        self._debug_screenshots_dir = (debug_screenshots_dir or "").strip() or None
        self._extractor = extractor or ReviewCardExtractor()
        self._playwright_factory = playwright_factory
        self._panel_strategies = PANEL_STRATEGIES

    @classmethod
    def from_settings(cls, config: Settings = settings, **overrides: Any) -> GoogleMapsReviewScraper:
        options: dict[str, Any] = {
            "headless": config.scraper_headless,
            "browser_channel": config.scraper_browser_channel,
            "user_agent": config.scraper_user_agent,
            "viewport_width": config.scraper_viewport_width,
            "viewport_height": config.scraper_viewport_height,
            "locale": config.scraper_locale,
            "accept_language": config.scraper_accept_language,
            "language": config.scraper_language,
            "navigation_timeout_ms": config.scraper_navigation_timeout_ms,
            "container_timeout_ms": config.scraper_container_timeout_ms,
            "max_reviews": config.scraper_max_reviews,
            "scroll_step_px": config.scraper_scroll_step_px,
            "scroll_settle_ms": config.scraper_scroll_settle_ms,
            "panel_settle_ms": config.scraper_panel_settle_ms,
            "interstitial_settle_ms": config.scraper_interstitial_settle_ms,
            "extra_chromium_args": config.scraper_extra_chromium_args,
            "debug_screenshots_dir": config.scraper_debug_screenshots_dir,
        }
        options.update(overrides)
        return cls(**options)

    async def fetch_reviews(self, location: PlaceLocation | str) -> list[Review]:
        raw_url = location.url if isinstance(location, PlaceLocation) else location
        place = parse_place_location(raw_url)

        async with self.session() as session:
            page = session.page
            await self.navigate(page, place)
            await self._capture_debug_screenshot(page, "navigated")
            await self.dismiss_interstitials(page)
            await self.open_reviews_panel(page)
            await self._capture_debug_screenshot(page, "reviews_panel")
            container = await self.resolve_container(page)
            reviews = await self.load_reviews(page, container)
            await self._capture_debug_screenshot(page, "reviews_loaded")

        LOGGER.info("Fetched %s reviews from %s", len(reviews), place.url)
        return reviews

    @asynccontextmanager
    async def session(self) -> AsyncIterator[ExtractionSession]:
        playwright = await self._playwright_factory().start()
        browser: Browser | None = None
        context: BrowserContext | None = None
        page: Page | None = None

        try:
            browser = await self._launch_browser(playwright)
            context = await browser.new_context(
                user_agent=self._user_agent,
                viewport=self._viewport,
                locale=self._locale,
                extra_http_headers={"Accept-Language": self._accept_language},
            )
            page = await context.new_page()
            yield ExtractionSession(playwright=playwright, browser=browser, context=context, page=page)
        finally:
            # Release errors must not replace the outcome of the extraction.
            await self._release("page", page)
            await self._release("context", context)
            await self._release("browser", browser)
            try:
                await playwright.stop()
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("Ignoring error while stopping Playwright: %s", exc)

    async def navigate(self, page: Page, location: PlaceLocation) -> None:
        target_url = with_language(location.url, self._language)
        LOGGER.info("Opening place page %s", target_url)
        try:
            await page.goto(target_url, wait_until="networkidle", timeout=self._navigation_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeoutError(
                f"Place page did not settle within {self._navigation_timeout_ms / 1000:.0f}s: {target_url}"
            ) from exc
        except PlaywrightError as exc:
            raise NavigationFailedError(f"Could not load place page {target_url}: {exc}") from exc

    async def dismiss_interstitials(self, page: Page) -> None:
        for label in CONSENT_BUTTON_LABELS:
            button = page.get_by_role("button", name=label)
            try:
                if await button.count() <= 0:
                    continue
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("Interstitial button %r could not be checked: %s", label, exc)
                continue

            try:
                LOGGER.info("Dismissing interstitial with button %r", label)
                await button.first.click()
                await page.wait_for_timeout(self._interstitial_settle_ms)
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("Interstitial dismissal failed, continuing: %s", exc)
            return

    async def open_reviews_panel(self, page: Page) -> str:
        for name, strategy in self._panel_strategies:
            candidates = strategy(page)
            try:
                if await candidates.count() <= 0:
                    continue
                LOGGER.info("Opening reviews panel with strategy=%s", name)
                await candidates.first.click()
            except PlaywrightError as exc:
                # Hidden or detached match: the next strategy gets its chance.
                LOGGER.debug("Panel strategy %s could not be activated: %s", name, exc)
                continue

            await page.wait_for_timeout(self._panel_settle_ms)
            return name

        raise PanelNotFoundError(
            "Could not find the reviews button on this page. "
            "Verify the URL points to a direct Google Maps place page (https://www.google.com/maps/place/...)."
        )

    async def resolve_container(self, page: Page) -> Locator:
        markers = ", ".join(SELECTOR_PATTERNS["REVIEW_MARKERS"])

        for selector in SELECTOR_PATTERNS["REVIEWS_CONTAINER"]:
            candidate = page.locator(selector).first
            try:
                await candidate.wait_for(state="visible", timeout=self._container_timeout_ms)
                if await candidate.locator(markers).count() > 0:
                    LOGGER.info("Reviews container resolved with selector=%s", selector)
                    return candidate
            except PlaywrightTimeoutError:
                continue
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("Container candidate %s failed: %s", selector, exc)
                continue

        raise ContainerNotFoundError(
            "Reviews panel opened but no scrollable reviews container was recognized. "
            "The Google Maps layout may have changed."
        )

    async def load_reviews(self, page: Page, container: Locator) -> list[Review]:
        accumulator = ReviewAccumulator(max_size=self._max_reviews)
        last_scroll_offset = 0
        rounds = 0
        stop_reason = "max_reviews"

        while not accumulator.is_full():
            rounds += 1
            try:
                snapshot_html = await container.evaluate(_OUTER_HTML_JS)
            except PlaywrightError as exc:
                raise ReviewLoadingError(f"Could not read the reviews container on round {rounds}: {exc}") from exc
            candidates = self._extractor.extract_candidates(str(snapshot_html or ""))
            added = accumulator.add_all(candidates)
            LOGGER.debug(
                "round=%s candidates=%s added=%s total=%s", rounds, len(candidates), added, len(accumulator)
            )

            if accumulator.is_full():
                stop_reason = "max_reviews"
                break

            try:
                raw_offset = await container.evaluate(_SCROLL_BY_JS, self._scroll_step_px)
            except PlaywrightError as exc:
                raise ReviewLoadingError(f"Could not scroll the reviews container on round {rounds}: {exc}") from exc

            scroll_offset = int(round(float(raw_offset or 0)))
            if scroll_offset == last_scroll_offset:
                stop_reason = "scroll_stalled"
                break

            last_scroll_offset = scroll_offset
            await page.wait_for_timeout(self._scroll_settle_ms)

        LOGGER.info("Review loading stopped reason=%s rounds=%s reviews=%s", stop_reason, rounds, len(accumulator))
        return accumulator.reviews()

    async def _launch_browser(self, playwright: Playwright) -> Browser:
        launch_options: dict[str, Any] = {
            "headless": self._headless,
            "args": self._extra_chromium_args,
        }
        if self._browser_channel:
            launch_options["channel"] = self._browser_channel

        try:
            return await playwright.chromium.launch(**launch_options)
        except Exception:
            if not self._browser_channel:
                raise
            # Fallback to bundled Chromium if requested browser channel is unavailable.
            launch_options.pop("channel", None)
            return await playwright.chromium.launch(**launch_options)

    async def _release(self, name: str, resource: Any) -> None:
        if resource is None:
            return
        try:
            await resource.close()
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Ignoring error while closing %s: %s", name, exc)

    async def _capture_debug_screenshot(self, page: Page, label: str) -> None:
        if not self._debug_screenshots_dir:
            return

        try:
            directory = Path(self._debug_screenshots_dir).expanduser()
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / f"{int(time() * 1000)}_{label}.png"
            await page.screenshot(path=str(path), full_page=True)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Diagnostic screenshot %s failed: %s", label, exc)
