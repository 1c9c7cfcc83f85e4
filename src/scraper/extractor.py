from __future__ import annotations

import math
import re
from time import time
from typing import Callable

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from src.models.review import ReviewCandidate
from src.scraper.selectors import SELECTOR_PATTERNS, STAR_WORDS

MIN_TEXT_LENGTH = 20
MAX_TEXT_LENGTH = 2000
GENERIC_MIN_TOTAL_TEXT = 50
AUTHOR_MIN_LENGTH = 3
AUTHOR_MAX_LENGTH = 50

_NON_CONTENT_TAGS = {"script", "style", "noscript", "template"}

_RATING_REGEX = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*(?:" + "|".join(re.escape(word) for word in STAR_WORDS) + r")\b",
    re.IGNORECASE,
)
_NUMBER_REGEX = re.compile(r"\d+(?:[.,]\d+)?")
_ELAPSED_TIME_REGEX = re.compile(
    r"(?:edited\s+|editado\s+|modificato\s+|modifié\s+)?(?:"
    r"(?:a|an|one|\d+)\s+(?:second|minute|hour|day|week|month|year)s?\s+ago"
    r"|hace\s+(?:un|una|\d+)\s+(?:segundo|minuto|hora|d[ií]a|semana|mes|a[ñn]o)(?:s|es)?"
    r"|(?:un|una|\d+)\s+(?:second[oi]|minut[oi]|or[ae]|giorn[oi]|settiman[ae]|mes[ei]|ann[oi])\s+fa"
    r"|il\s+y\s+a\s+(?:un|une|\d+)\s+(?:seconde|minute|heure|jour|semaine|mois|an)s?"
    r"|vor\s+(?:einem|einer|\d+)\s+(?:sekunde|minute|stunde|tag|woche|monat|jahr)(?:en|n|e|s)?"
    r"|just\s+now|hace\s+un\s+momento"
    r")",
    re.IGNORECASE,
)
_NUMERIC_DATE_REGEX = re.compile(r"\d{1,4}[./-]\d{1,2}[./-]\d{1,4}")
_NAME_TOKEN_PUNCTUATION = ".'’-"

NodeStrategy = Callable[[BeautifulSoup], list[Tag]]


def parse_star_rating(label: str | None) -> int:
    """Return the 1..5 rating found in a label like ``"4.0 stars"``, else 0."""
    if not label:
        return 0

    if not _RATING_REGEX.search(label):
        return 0

    # "4 out of 5 stars": the rating is the first number, not the scale.
    match = _NUMBER_REGEX.search(label)
    try:
        value = float(match.group(0).replace(",", "."))
    except ValueError:
        return 0

    # Nearest integer, halves rounded up.
    rating = int(math.floor(value + 0.5))
    return rating if 1 <= rating <= 5 else 0


def looks_like_elapsed_time(text: str) -> bool:
    return bool(_ELAPSED_TIME_REGEX.fullmatch(text.strip()))


def looks_like_numeric_date(text: str) -> bool:
    return bool(_NUMERIC_DATE_REGEX.fullmatch(text.strip()))


def looks_like_person_name(text: str, *, min_tokens: int = 2, max_tokens: int = 3) -> bool:
    tokens = text.split()
    if not min_tokens <= len(tokens) <= max_tokens:
        return False

    for token in tokens:
        core = token.strip(_NAME_TOKEN_PUNCTUATION)
        if not core or not core[0].isupper():
            return False
        if not all(char.isalpha() or char in _NAME_TOKEN_PUNCTUATION for char in token):
            return False
    return True


class ReviewCardExtractor:
    """Recovers review candidates from an HTML snapshot of the reviews container.

    Read-only: the snapshot is parsed fresh on every call, so extracting twice
    from the same HTML yields the same candidates (synthetic ids aside).
    """

    def __init__(self) -> None:
        self._node_strategies: tuple[tuple[str, NodeStrategy], ...] = (
            ("review_id", self._nodes_by_review_id),
            ("structure", self._nodes_by_structure),
            ("generic", self._nodes_by_generic_container),
        )

    def extract_candidates(self, snapshot_html: str, *, captured_at_ms: int | None = None) -> list[ReviewCandidate]:
        if not snapshot_html:
            return []

        captured_at = captured_at_ms if captured_at_ms is not None else int(time() * 1000)
        soup = BeautifulSoup(snapshot_html, "html.parser")
        nodes = self.discover_nodes(soup)

        return [self._extract_candidate(node, position, captured_at) for position, node in enumerate(nodes)]

    def discover_nodes(self, soup: BeautifulSoup) -> list[Tag]:
        for _, strategy in self._node_strategies:
            nodes = strategy(soup)
            if nodes:
                return nodes
        return []

    def _extract_candidate(self, node: Tag, position: int, captured_at_ms: int) -> ReviewCandidate:
        review_id = self._clean_text(node.get("data-review-id"))
        if not review_id:
            review_id = f"synthetic-{position}-{captured_at_ms}"

        text_items = self._direct_texts(node)
        text, language = self._pick_body_text(node, text_items)

        return ReviewCandidate(
            id=review_id,
            author_name=self._pick_author(text_items),
            rating=parse_star_rating(self._rating_label(node)),
            text=text,
            date=self._pick_date(text_items),
            language=language,
        )

    # Node discovery strategies

    def _nodes_by_review_id(self, soup: BeautifulSoup) -> list[Tag]:
        nodes = self._select_all(soup, "REVIEW_CARDS_BY_ID")
        return self._outermost(nodes)

    def _nodes_by_structure(self, soup: BeautifulSoup) -> list[Tag]:
        for selector in SELECTOR_PATTERNS["REVIEW_CARDS_BY_STRUCTURE"]:
            nodes = [
                node
                for node in soup.select(selector)
                if self._rating_label(node) is not None and self._has_long_text(node)
            ]
            if nodes:
                return self._outermost(nodes)
        return []

    def _nodes_by_generic_container(self, soup: BeautifulSoup) -> list[Tag]:
        nodes: list[Tag] = []
        for selector in SELECTOR_PATTERNS["REVIEW_CARDS_GENERIC"]:
            for node in soup.select(selector):
                if self._rating_label(node) is None:
                    continue
                if len(self._clean_text(node.get_text(" ")) or "") <= GENERIC_MIN_TOTAL_TEXT:
                    continue
                nodes.append(node)
        return self._innermost(nodes)

    # Field recovery

    def _rating_label(self, node: Tag) -> str | None:
        for selector in SELECTOR_PATTERNS["RATING_INDICATOR"]:
            for indicator in node.select(selector):
                label = self._clean_text(indicator.get("aria-label"))
                if label and parse_star_rating(label) > 0:
                    return label
        return None

    def _pick_body_text(self, node: Tag, text_items: list[tuple[Tag, str]]) -> tuple[str, str | None]:
        best_text = ""
        best_element: Tag | None = None

        for element, text in text_items:
            if not MIN_TEXT_LENGTH < len(text) < MAX_TEXT_LENGTH:
                continue
            if looks_like_elapsed_time(text) or looks_like_person_name(text, min_tokens=2, max_tokens=2):
                continue
            if len(text) > len(best_text):
                best_text = text
                best_element = element

        if best_element is not None:
            return best_text, self._language_of(best_element, node)

        own_text = self._own_text(node) or ""
        if len(own_text) > MIN_TEXT_LENGTH:
            return own_text, self._language_of(node, node)
        return "", None

    def _pick_author(self, text_items: list[tuple[Tag, str]]) -> str | None:
        for _, text in text_items:
            if AUTHOR_MIN_LENGTH <= len(text) <= AUTHOR_MAX_LENGTH and looks_like_person_name(text):
                return text
        return None

    def _pick_date(self, text_items: list[tuple[Tag, str]]) -> str | None:
        for _, text in text_items:
            if looks_like_elapsed_time(text) or looks_like_numeric_date(text):
                return text
        return None

    def _language_of(self, element: Tag, root: Tag) -> str | None:
        current: Tag | None = element
        while current is not None:
            lang = self._clean_text(current.get("lang"))
            if lang:
                return lang
            if current is root:
                break
            current = current.parent
        return None

    # Helpers

    def _direct_texts(self, node: Tag) -> list[tuple[Tag, str]]:
        items: list[tuple[Tag, str]] = []
        for element in node.find_all(True):
            if element.name in _NON_CONTENT_TAGS:
                continue
            text = self._own_text(element)
            if text:
                items.append((element, text))
        return items

    def _own_text(self, element: Tag) -> str | None:
        parts = [
            str(child)
            for child in element.children
            if isinstance(child, NavigableString) and not isinstance(child, Comment)
        ]
        return self._clean_text(" ".join(parts))

    def _has_long_text(self, node: Tag) -> bool:
        return any(len(text) >= MIN_TEXT_LENGTH for _, text in self._direct_texts(node))

    def _select_all(self, soup: BeautifulSoup, key: str) -> list[Tag]:
        nodes: list[Tag] = []
        seen: set[int] = set()
        for selector in SELECTOR_PATTERNS[key]:
            for node in soup.select(selector):
                if id(node) in seen:
                    continue
                seen.add(id(node))
                nodes.append(node)
        return nodes

    def _outermost(self, nodes: list[Tag]) -> list[Tag]:
        selected = {id(node) for node in nodes}
        return [node for node in nodes if not any(id(parent) in selected for parent in node.parents)]

    def _innermost(self, nodes: list[Tag]) -> list[Tag]:
        selected = {id(node) for node in nodes}
        return [
            node
            for node in nodes
            if not any(id(descendant) in selected for descendant in node.find_all(True))
        ]

    def _clean_text(self, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, list):
            value = " ".join(str(item) for item in value)
        cleaned = re.sub(r"\s+", " ", str(value)).strip()
        return cleaned or None
