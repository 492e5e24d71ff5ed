"""Candidate scorer that combines the scoring components."""

from datetime import datetime
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

from ..clock import utcnow
from ..config import ScoringConfig
from ..models import ArticleCandidate, FeedResult
from .scorers import CategoryAffinityScorer, SimilarityScorer, build_freshness_scorer

console = Console()


class CandidateScorer:
    """Composite relevance score from category affinity, similarity and freshness."""

    def __init__(
        self,
        config: ScoringConfig,
        preferences: Optional[Dict[int, float]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Initialize candidate scorer.

        Args:
            config: Scoring configuration
            preferences: Category ID to preference score
            now: Reference time for freshness
        """
        self.config = config
        self.now = now or utcnow()
        self.freshness_scorer = build_freshness_scorer(config)
        self.category_scorer = CategoryAffinityScorer(
            preferences or {}, default=config.default_category_preference
        )
        self.similarity_scorer = SimilarityScorer()

    def _generate_reason(self, scores: Dict[str, float], candidate: ArticleCandidate) -> str:
        """Generate human-readable reason for score."""
        reasons = []

        if candidate.category_id in self.category_scorer.preferences:
            reasons.append("Matches a favourite category")
        else:
            reasons.append("Outside your usual categories")

        if scores.get("similarity", 0.0) >= 0.7:
            reasons.append("similar to articles you read")

        if scores["freshness"] >= 0.9:
            reasons.append("just published")
        elif scores["freshness"] <= 0.3:
            reasons.append("older article")

        if not reasons:
            reasons.append("Balanced scoring across factors")

        return "; ".join(reasons)

    def score_candidate(self, candidate: ArticleCandidate) -> ArticleCandidate:
        """Score a single candidate, returning an updated copy."""
        context = {"now": self.now}
        scores = {
            "category": self.category_scorer.score(candidate, context),
            "freshness": self.freshness_scorer.score(candidate, context),
        }

        if candidate.similarity is not None:
            scores["similarity"] = self.similarity_scorer.score(candidate, context)
            total = (
                scores["category"] * self.config.similarity_category_weight
                + scores["similarity"] * self.config.similarity_weight
                + scores["freshness"] * self.config.similarity_freshness_weight
            )
        else:
            total = (
                scores["category"] * self.config.category_weight
                + scores["freshness"] * self.config.freshness_weight
            )

        return candidate.model_copy(
            update={
                "score": total,
                "score_breakdown": scores,
                "explanation": candidate.explanation or self._generate_reason(scores, candidate),
            }
        )

    def score_all(self, candidates: List[ArticleCandidate]) -> List[ArticleCandidate]:
        """Score candidates and sort them by score, best first."""
        scored = [self.score_candidate(c) for c in candidates]
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored


def print_feed_summary(result: FeedResult, titles: bool = True) -> None:
    """Print a feed as a table."""
    console.print(f"\n[bold]Feed for user {result.user_id}:[/bold]")
    console.print(f"  Items: {len(result.items)}")
    if result.cold_start:
        console.print("  [yellow]Cold start: chronological feed[/yellow]")
    if result.prediction_applied:
        console.print("  Click prediction applied")

    counts = result.counts_by_source
    if counts:
        console.print("  Sources: " + ", ".join(f"{k}={v}" for k, v in sorted(counts.items())))

    table = Table(title="Ranked Feed")
    table.add_column("#", justify="right")
    table.add_column("Article", justify="right")
    if titles:
        table.add_column("Title", style="yellow")
    table.add_column("Category", justify="right")
    table.add_column("Source", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Reason", style="dim")

    for item in result.items:
        row = [str(item.position + 1 if item.position is not None else "-"), str(item.article_id)]
        if titles:
            row.append(item.title)
        row.extend([
            str(item.category_id if item.category_id is not None else "-"),
            item.source.value,
            f"{item.score:.3f}",
            item.explanation,
        ])
        table.add_row(*row)

    console.print(table)

    failed = {name: s for name, s in result.stages.items() if not s.get("success", True)}
    for name, stage in failed.items():
        console.print(f"  [red]Stage {name} degraded: {stage.get('error')}[/red]")
