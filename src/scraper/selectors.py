import re
from typing import Final

# Selector strategy based on UI structure and behavior attributes.
# Avoid concrete ids because they change frequently in Google Maps.
# Every group is ordered from most specific/stable to most generic.
SELECTOR_PATTERNS: Final[dict[str, tuple[str, ...]]] = {
    # Reviews panel entrypoints
    "REVIEWS_LEGACY_HOOK": (
        "button[jsaction*='reviewDialog']",
        "button[jsaction*='reviewChart.moreReviews']",
        "div[jsaction*='reviewChart.moreReviews'] button",
    ),
    "REVIEWS_CLASS_MARKERS": (
        "button[role='tab'].hh2c6:has(.Gpq6kf)",
        "button.M77dve:has(span.wNNZR)",
        "button.HHrUdb",
    ),
    "REVIEWS_GENERIC": (
        "button[aria-label*='review' i]",
        "button[aria-label*='rese' i]",
        "button[aria-label*='recension' i]",
        "[role='button'][aria-label*='review' i]",
        "a[href*='/reviews']",
    ),
    "CLICKABLE": (
        "button, [role='button'], [role='tab']",
    ),
    # Scrollable container hosting review cards
    "REVIEWS_CONTAINER": (
        "div[role='main'] div[aria-label*='Google reviews' i]",
        "div[aria-label*='Google reviews' i]",
        "div[aria-label*='Reviews' i][tabindex='-1']",
        "div[aria-label*='Reviews' i]",
        "div[aria-label*='Reseñas' i]",
        "div[aria-label*='Recensioni' i]",
        "div.m6QErb.DxyBCb.kA9KIf.dS8AEf",
        "div.m6QErb.DxyBCb",
        "div.m6QErb.XiKgde",
        "div[role='main'] div.m6QErb[tabindex='-1']",
        "div[style*='overflow-y: auto']",
        "div[style*='overflow-y: scroll']",
        "div[style*='overflow: auto']",
        "div[style*='overflow: scroll']",
    ),
    # Any of these inside a container means it hosts review entries
    "REVIEW_MARKERS": (
        "[data-review-id]",
        "div.jftiEf",
        "[role='img'][aria-label*='star' i]",
        "[role='img'][aria-label*='estrella' i]",
        "[role='img'][aria-label*='stell' i]",
    ),
    # Review cards inside a container snapshot (BeautifulSoup CSS)
    "REVIEW_CARDS_BY_ID": (
        "[data-review-id]",
    ),
    "REVIEW_CARDS_BY_STRUCTURE": (
        "div.jftiEf",
        "[role='listitem']",
        "li",
        "div[class*='review' i]",
        "article",
    ),
    "REVIEW_CARDS_GENERIC": (
        "div",
    ),
    "RATING_INDICATOR": (
        "[role='img'][aria-label]",
        "span.kvMYJc[aria-label]",
    ),
}

# Accessible names of consent/continuation buttons, checked in this order.
CONSENT_BUTTON_LABELS: Final[tuple[str, ...]] = (
    "Accept all",
    "Aceptar todo",
    "Accetta tutto",
    "Tout accepter",
    "Alle akzeptieren",
    "Aceitar tudo",
    "I agree",
    "Estoy de acuerdo",
    "Accetto",
    "J'accepte",
    "Ich stimme zu",
    "Continue",
    "Continuar",
    "Continua",
    "Continuer",
    "Weiter",
)

REVIEWS_ENTRY_REGEX: Final[re.Pattern[str]] = re.compile(
    r"^\s*(?:more\s+|all\s+|m[aá]s\s+)?(?:google\s+)?"
    r"(?:reviews|rese[ñn]as|recensioni|avis|bewertungen|avalia[cç][oõ]es)\b",
    re.IGNORECASE,
)
REVIEWS_TEXT_REGEX: Final[re.Pattern[str]] = re.compile(
    r"\b(?:\d[\d.,]*\s+)?(?:reviews|rese[ñn]as|recensioni|avis|bewertungen|avalia[cç][oõ]es)\b",
    re.IGNORECASE,
)

STAR_WORDS: Final[tuple[str, ...]] = (
    "stars",
    "star",
    "estrellas",
    "estrella",
    "stelle",
    "stella",
    "étoiles",
    "étoile",
    "etoiles",
    "etoile",
    "sterne",
    "stern",
    "estrelas",
    "estrela",
    "sterren",
    "ster",
)
