from typing import Iterable

from src.models.review import Review, ReviewCandidate

MAX_REVIEWS = 500


class ReviewAccumulator:
    """Insertion-ordered, id-keyed set of accepted reviews. First-seen id wins."""

    def __init__(self, max_size: int = MAX_REVIEWS) -> None:
        self._max_size = max(0, max_size)
        self._reviews: dict[str, Review] = {}

    def __len__(self) -> int:
        return len(self._reviews)

    def __contains__(self, review_id: object) -> bool:
        return review_id in self._reviews

    def is_full(self) -> bool:
        return len(self._reviews) >= self._max_size

    def add(self, candidate: ReviewCandidate) -> bool:
        if self.is_full() or not candidate.is_acceptable():
            return False
        if candidate.id in self._reviews:
            return False

        self._reviews[candidate.id] = candidate.to_review()
        return True

    def add_all(self, candidates: Iterable[ReviewCandidate]) -> int:
        return sum(1 for candidate in candidates if self.add(candidate))

    def reviews(self) -> list[Review]:
        return list(self._reviews.values())
