from typing import Iterable, List, Optional, Protocol

from bookstop.schemas.list_schema import ListMetadata
from bookstop.utils.rounding import round_half_up


class RatedBook(Protocol):
    ratings_average: Optional[float]
    subjects: List[str]


def compute_list_metadata(books: Iterable[RatedBook]) -> ListMetadata:
    """
    Aggregates over a list's member books: how many there are, the mean of
    their ratings (one decimal, books without a rating skipped, 0 when none
    are rated) and the union of their subjects in first-seen order.
    """
    books = list(books)
    ratings = [book.ratings_average for book in books if book.ratings_average]

    genres: List[str] = []
    seen = set()
    for book in books:
        for subject in book.subjects or []:
            if subject not in seen:
                seen.add(subject)
                genres.append(subject)

    average = round_half_up(sum(ratings) / len(ratings), 1) if ratings else 0.0
    return ListMetadata(total_books=len(books), average_rating=average, genres=genres)
