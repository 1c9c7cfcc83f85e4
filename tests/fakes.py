"""In-memory stand-ins for the slice of the Playwright async API the scraper uses."""

from __future__ import annotations

from typing import Any

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.scraper.google_maps import GoogleMapsReviewScraper


class FakeLocator:
    def __init__(
        self,
        count: int = 0,
        *,
        visible: bool = False,
        marker_count: int = 0,
        count_error: Exception | None = None,
        marker_error: Exception | None = None,
        click_error: Exception | None = None,
    ) -> None:
        self._count = count
        self.visible = visible
        self.marker_count = marker_count
        self.count_error = count_error
        self.marker_error = marker_error
        self.click_error = click_error
        self.clicks = 0
        self.wait_timeouts: list[float | None] = []

    @property
    def first(self) -> FakeLocator:
        return self

    def filter(self, **_: Any) -> FakeLocator:
        return self

    def locator(self, _: str) -> FakeLocator:
        return FakeLocator(count=self.marker_count, count_error=self.marker_error)

    async def count(self) -> int:
        if self.count_error is not None:
            raise self.count_error
        return self._count

    async def click(self) -> None:
        self.clicks += 1
        if self.click_error is not None:
            raise self.click_error

    async def wait_for(self, state: str = "visible", timeout: float | None = None) -> None:
        self.wait_timeouts.append(timeout)
        if not self.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for state={state}")


class FakeContainer(FakeLocator):
    """Visible container serving successive HTML snapshots and scroll offsets."""

    def __init__(
        self,
        snapshots: list[str],
        offsets: list[int],
        *,
        marker_count: int = 1,
        evaluate_error: Exception | None = None,
    ) -> None:
        super().__init__(count=1, visible=True, marker_count=marker_count)
        self.snapshots = snapshots
        self.offsets = offsets
        self.evaluate_error = evaluate_error
        self.snapshot_calls = 0
        self.scroll_calls = 0

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        if self.evaluate_error is not None:
            raise self.evaluate_error
        if "outerHTML" in expression:
            index = min(self.snapshot_calls, len(self.snapshots) - 1)
            self.snapshot_calls += 1
            return self.snapshots[index]
        if "scrollBy" in expression:
            index = min(self.scroll_calls, len(self.offsets) - 1)
            self.scroll_calls += 1
            return self.offsets[index]
        raise AssertionError(f"Unexpected evaluate call: {expression}")


class FakePage:
    def __init__(
        self,
        locators: dict[str, FakeLocator] | None = None,
        *,
        goto_error: Exception | None = None,
        screenshot_error: Exception | None = None,
    ) -> None:
        self.locators = dict(locators or {})
        self.goto_error = goto_error
        self.screenshot_error = screenshot_error
        self.goto_calls: list[dict[str, Any]] = []
        self.waits: list[int] = []
        self.screenshots: list[str] = []
        self.closed = False

    def register(self, key: str, locator: FakeLocator) -> FakeLocator:
        self.locators[key] = locator
        return locator

    def locator(self, selector: str) -> FakeLocator:
        return self.locators.get(selector, FakeLocator())

    def get_by_role(self, role: str, name: Any = None) -> FakeLocator:
        key = f"role={role}[{name}]" if isinstance(name, str) else f"role={role}"
        return self.locators.get(key, FakeLocator())

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.goto_calls.append({"url": url, **kwargs})
        if self.goto_error is not None:
            raise self.goto_error

    async def wait_for_timeout(self, timeout: int) -> None:
        self.waits.append(timeout)

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        if self.screenshot_error is not None:
            raise self.screenshot_error
        self.screenshots.append(path)

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, page: FakePage, close_error: Exception | None = None) -> None:
        self.page = page
        self.close_error = close_error
        self.options: dict[str, Any] = {}
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeBrowser:
    def __init__(self, context: FakeContext, close_error: Exception | None = None) -> None:
        self.context = context
        self.close_error = close_error
        self.closed = False

    async def new_context(self, **options: Any) -> FakeContext:
        self.context.options = options
        return self.context

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeChromium:
    def __init__(self, browser: FakeBrowser) -> None:
        self.browser = browser
        self.launch_options: dict[str, Any] = {}

    async def launch(self, **options: Any) -> FakeBrowser:
        self.launch_options = options
        return self.browser


class FakePlaywright:
    def __init__(self, page: FakePage, *, close_error: Exception | None = None) -> None:
        self.page = page
        self.context = FakeContext(page, close_error=close_error)
        self.browser = FakeBrowser(self.context, close_error=close_error)
        self.chromium = FakeChromium(self.browser)
        self.started = 0
        self.stopped = False

    def __call__(self) -> FakePlaywright:
        # Stands in for ``async_playwright`` itself.
        return self

    async def start(self) -> FakePlaywright:
        self.started += 1
        return self

    async def stop(self) -> None:
        self.stopped = True

    def all_released(self) -> bool:
        return self.page.closed and self.context.closed and self.browser.closed and self.stopped


def build_scraper(page: FakePage, **overrides: Any) -> tuple[GoogleMapsReviewScraper, FakePlaywright]:
    playwright = FakePlaywright(page, close_error=overrides.pop("close_error", None))
    scraper = GoogleMapsReviewScraper(playwright_factory=playwright, **overrides)
    return scraper, playwright


def review_card(
    review_id: str | None,
    *,
    author: str = "Maria Lopez",
    rating_label: str | None = "4.0 stars",
    text: str = "Great food and friendly staff, we will return.",
    date: str = "2 months ago",
) -> str:
    id_attr = f' data-review-id="{review_id}"' if review_id is not None else ""
    rating = f'<span class="kvMYJc" role="img" aria-label="{rating_label}"></span>' if rating_label else ""
    return (
        f'<div class="jftiEf fontBodyMedium"{id_attr}>'
        f'<div class="d4r55">{author}</div>'
        f"<div>{rating}<span class=\"rsqaWe\">{date}</span></div>"
        f'<div class="MyEned"><span class="wiI7pd">{text}</span></div>'
        "</div>"
    )


def container_html(cards: list[str]) -> str:
    return f'<div class="m6QErb DxyBCb" aria-label="Google reviews" tabindex="-1">{"".join(cards)}</div>'
