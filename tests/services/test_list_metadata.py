# tests/services/test_list_metadata.py
from bookstop.models.book_model import Book
from bookstop.services.list_metadata import compute_list_metadata
from bookstop.utils.rounding import round_half_up


def _book(rating=None, subjects=None) -> Book:
    return Book(title="t", isbn="1", ratings_average=rating, subjects=subjects or [])


def test_empty_list_metadata():
    """Test an empty list has zero books, zero rating and no genres."""
    metadata = compute_list_metadata([])
    assert metadata.total_books == 0
    assert metadata.average_rating == 0
    assert metadata.genres == []


def test_adding_a_book_updates_metadata():
    """Test the favorites example: a second book widens genres and keeps the mean."""
    first = _book(4.2, ["Fiction"])
    assert compute_list_metadata([first]).model_dump() == {
        "total_books": 1,
        "average_rating": 4.2,
        "genres": ["Fiction"],
    }

    second = _book(4.2, ["Fiction", "Sci-Fi"])
    assert compute_list_metadata([first, second]).model_dump() == {
        "total_books": 2,
        "average_rating": 4.2,
        "genres": ["Fiction", "Sci-Fi"],
    }


def test_unrated_books_do_not_drag_the_average():
    """Test that books without a rating are left out of the mean."""
    metadata = compute_list_metadata([_book(4.0), _book(None), _book(3.0)])
    assert metadata.total_books == 3
    assert metadata.average_rating == 3.5


def test_average_rounds_half_up():
    """Test the mean is rounded to one decimal, halves going up."""
    metadata = compute_list_metadata([_book(4.0), _book(4.5)])
    assert metadata.average_rating == 4.3


def test_round_half_up():
    """Test the rounding helper against values banker's rounding gets wrong."""
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(4.25, 1) == 4.3
