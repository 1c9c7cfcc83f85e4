class InvalidLocationError(ValueError):
    """The input URL is not a Google Maps place page."""


class ReviewExtractionError(RuntimeError):
    """A fatal stage of the extraction pipeline failed. Never retried internally."""


class NavigationTimeoutError(ReviewExtractionError):
    pass


class PanelNotFoundError(ReviewExtractionError):
    pass


class ContainerNotFoundError(ReviewExtractionError):
    pass


class NavigationFailedError(ReviewExtractionError):
    """The place page could not be loaded (DNS, TLS, aborted request...)."""


class ReviewLoadingError(ReviewExtractionError):
    """The reviews container stopped answering while reviews were being loaded."""
