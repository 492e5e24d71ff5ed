"""Tests for the category diversity window."""

from feedrank.models import ArticleCandidate
from feedrank.ranking import Diversifier


def items(*categories):
    return [ArticleCandidate(article_id=i, category_id=c) for i, c in enumerate(categories)]


class TestDiversifier:
    """No category more than 3 times in any 4 consecutive slots."""

    def test_fits_short_feed(self):
        diversifier = Diversifier()
        assert diversifier.fits([], items(1)[0])
        assert diversifier.fits(items(1, 1), items(1)[0])

    def test_fourth_in_a_row_rejected(self):
        diversifier = Diversifier()
        assert not diversifier.fits(items(1, 1, 1), ArticleCandidate(article_id=9, category_id=1))

    def test_uncategorized_never_restricted(self):
        diversifier = Diversifier()
        assert diversifier.fits(items(None, None, None), ArticleCandidate(article_id=9))

    def test_split_defers_and_retries(self):
        diversifier = Diversifier()
        accepted, deferred = diversifier.split(items(1, 1, 1, 1, 1, 1, 2, 2))

        assert deferred == []
        assert diversifier.is_valid(accepted)
        assert [c.category_id for c in accepted][:4] == [1, 1, 1, 2]
        assert len(accepted) == 8

    def test_split_single_category(self):
        diversifier = Diversifier()
        accepted, deferred = diversifier.split(items(1, 1, 1, 1, 1))
        assert len(accepted) == 3
        assert len(deferred) == 2

    def test_keeps_score_order_when_already_diverse(self):
        diversifier = Diversifier()
        candidates = items(1, 2, 3, 1, 2, 3)
        assert diversifier.diversify(candidates) == candidates

    def test_is_valid(self):
        diversifier = Diversifier()
        assert diversifier.is_valid(items(1, 1, 1, 2, 1, 1, 1))
        assert not diversifier.is_valid(items(2, 1, 1, 1, 1))

    def test_custom_window(self):
        diversifier = Diversifier(max_same_category=1, window_size=2)
        accepted, deferred = diversifier.split(items(1, 1, 2, 2))
        assert [c.category_id for c in accepted] == [1, 2, 1, 2]
        assert deferred == []
