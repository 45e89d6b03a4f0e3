from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from datetime import datetime
from decimal import Decimal
from models.match_result import MatchResult
from models.transaction import Transaction, CANONICAL_STATUSES


class ReconciliationReport(BaseModel):
    """Report of one Smart Import session: parse, match and reconcile results."""

    run_id: str
    platform: str
    run_date: datetime
    source_identifier: str  # file path
    total_rows: int
    total_transactions: int
    skipped: Dict[str, int]  # reason -> count, never merged into the totals above
    new_records: List[Transaction]
    updates: List[Transaction]
    matches: List[Transaction]
    conflicts: List[Transaction]
    matched_transactions: int
    unmatched_transactions: int
    unknown_status: int
    confidence_distribution: Dict[str, int]  # high/medium/low counts
    match_method_breakdown: Dict[str, int]
    status_summary: Dict[str, int]
    succeeded_amount: Decimal
    suggestions: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    processing_time: float

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())

    def category_counts(self) -> Dict[str, int]:
        return {
            "new": len(self.new_records),
            "updates": len(self.updates),
            "matches": len(self.matches),
            "conflicts": len(self.conflicts),
        }

    def transactions_for(self, categories: List[str]) -> List[Transaction]:
        """Transactions of the selected categories, in category then file order."""
        by_category = {
            "new": self.new_records,
            "updates": self.updates,
            "matches": self.matches,
            "conflicts": self.conflicts,
        }
        selected = []
        for category in ("new", "updates", "conflicts", "matches"):
            if category in categories:
                selected.extend(by_category[category])
        return selected

    @classmethod
    def from_results(cls,
                     run_id: str,
                     platform: str,
                     source_identifier: str,
                     total_rows: int,
                     skipped: Dict[str, int],
                     transactions: List[Transaction],
                     match_results: List[MatchResult],
                     processing_time: float,
                     suggestions: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> "ReconciliationReport":
        """Create report from reconciled transactions and their match results."""

        buckets = {status: [] for status in ("new", "update", "match", "conflict")}
        for tx in transactions:
            buckets[tx.reconcile_status].append(tx)

        matched = sum(1 for r in match_results if r.is_matched)

        # Calculate confidence distribution
        confidence_dist = {"high": 0, "medium": 0, "low": 0}
        for result in match_results:
            if result.is_matched:
                confidence_dist[result.confidence_level] += 1

        # Calculate method breakdown
        method_breakdown = {}
        for result in match_results:
            method = result.match_method
            method_breakdown[method] = method_breakdown.get(method, 0) + 1

        status_summary = {status: 0 for status in CANONICAL_STATUSES}
        status_summary["unknown"] = 0
        succeeded_amount = Decimal("0")
        for tx in transactions:
            status_summary[tx.status or "unknown"] += 1
            if tx.status == "succeeded":
                succeeded_amount += tx.amount

        return cls(
            run_id=run_id,
            platform=platform,
            run_date=datetime.now(),
            source_identifier=source_identifier,
            total_rows=total_rows,
            total_transactions=len(transactions),
            skipped=dict(skipped),
            new_records=buckets["new"],
            updates=buckets["update"],
            matches=buckets["match"],
            conflicts=buckets["conflict"],
            matched_transactions=matched,
            unmatched_transactions=len(transactions) - matched,
            unknown_status=status_summary["unknown"],
            confidence_distribution=confidence_dist,
            match_method_breakdown=method_breakdown,
            status_summary=status_summary,
            succeeded_amount=succeeded_amount,
            suggestions=suggestions or {},
            processing_time=processing_time
        )
