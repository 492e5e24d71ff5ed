"""Category diversity window."""

from collections import deque
from typing import List, Sequence, Tuple

from ..models import ArticleCandidate


class Diversifier:
    """Caps how often one category may appear in a sliding window.

    No category may appear more than ``max_same_category`` times in any
    ``window_size`` consecutive slots. Candidates without a category are
    never restricted.
    """

    def __init__(self, max_same_category: int = 3, window_size: int = 4) -> None:
        self.max_same_category = max_same_category
        self.window_size = window_size

    def fits(self, accepted: Sequence[ArticleCandidate], candidate: ArticleCandidate) -> bool:
        """Whether appending candidate keeps the last window within the cap."""
        if candidate.category_id is None:
            return True
        start = max(0, len(accepted) - (self.window_size - 1))
        tail = accepted[start:] if self.window_size > 1 else []
        same = sum(1 for c in tail if c.category_id == candidate.category_id)
        return same + 1 <= self.max_same_category

    def split(
        self, candidates: Sequence[ArticleCandidate]
    ) -> Tuple[List[ArticleCandidate], List[ArticleCandidate]]:
        """
        Walk score-ordered candidates, deferring any that would break the window.

        Deferred candidates are retried, best first, before each new candidate.

        Returns:
            (accepted, deferred) where deferred never found a slot
        """
        incoming = deque(candidates)
        deferred: List[ArticleCandidate] = []
        accepted: List[ArticleCandidate] = []

        while incoming or deferred:
            for i, candidate in enumerate(deferred):
                if self.fits(accepted, candidate):
                    accepted.append(deferred.pop(i))
                    break
            else:
                if not incoming:
                    break
                candidate = incoming.popleft()
                if self.fits(accepted, candidate):
                    accepted.append(candidate)
                else:
                    deferred.append(candidate)

        return accepted, deferred

    def diversify(self, candidates: Sequence[ArticleCandidate]) -> List[ArticleCandidate]:
        """Accepted candidates only, in diversified order."""
        accepted, _ = self.split(candidates)
        return accepted

    def is_valid(self, sequence: Sequence[ArticleCandidate]) -> bool:
        """Check every window of the sequence."""
        for end in range(1, len(sequence) + 1):
            window = sequence[max(0, end - self.window_size):end]
            counts = {}
            for item in window:
                if item.category_id is None:
                    continue
                counts[item.category_id] = counts.get(item.category_id, 0) + 1
                if counts[item.category_id] > self.max_same_category:
                    return False
        return True
