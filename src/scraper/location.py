import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from src.models.review import PlaceLocation
from src.scraper.errors import InvalidLocationError

# google.com, google.es, google.co.uk, google.com.au ...
_GOOGLE_HOST_REGEX = re.compile(r"^(?:www\.|maps\.)?google\.(?:[a-z]{2,3})(?:\.[a-z]{2})?$")
_PLACE_QUERY_KEYS = ("cid", "place_id", "query_place_id")


def parse_place_location(url: str | None) -> PlaceLocation:
    raw_url = (url or "").strip()
    if not raw_url:
        raise InvalidLocationError("Missing Google Maps place URL.")

    try:
        parts = urlsplit(raw_url)
        host = (parts.hostname or "").lower()
    except ValueError as exc:
        raise InvalidLocationError(f"Invalid Google Maps place URL: {raw_url!r}") from exc

    if parts.scheme not in {"http", "https"} or not _GOOGLE_HOST_REGEX.match(host):
        raise InvalidLocationError(f"Not a Google Maps URL: {raw_url!r}")

    path = parts.path or ""
    if "/maps/place/" in path:
        return PlaceLocation(url=raw_url)

    query_keys = {key for key, _ in parse_qsl(parts.query, keep_blank_values=True)}
    if path.rstrip("/").endswith("/maps") and query_keys.intersection(_PLACE_QUERY_KEYS):
        return PlaceLocation(url=raw_url)

    raise InvalidLocationError(
        f"URL does not identify a Google Maps place: {raw_url!r}. "
        "Use a direct place link (https://www.google.com/maps/place/...)."
    )


def with_language(url: str, language: str) -> str:
    """Append ``hl=<language>`` unless the caller already chose a language."""
    if not language:
        return url

    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if any(key == "hl" for key, _ in query):
        return url

    query.append(("hl", language))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
