from abc import ABC, abstractmethod
from typing import Any, Dict, List
from models.match_result import MatchResult
from models.reconciliation_report import ReconciliationReport
from models.transaction import ParseResult, Transaction
from core.errors import SourceFileError
from core.reconciler import fetch_snapshots, reconcile
from core.session import ImportSession
import time
import logging
import json
from datetime import datetime
from pathlib import Path


class BaseTransactionImporter(ABC):
    """Abstract base class for transaction importers."""

    def __init__(self, session: ImportSession):
        self.session = session
        self.config = session.config
        self.platform = self._get_platform_name()
        self.progress_enabled = session.progress_enabled
        self.logger = self._setup_logging()

    def _setup_logging(self) -> logging.Logger:
        """Setup logging for this importer."""
        logger = logging.getLogger(f"{self.platform}_importer")
        logger.setLevel(logging.INFO)

        # Clear existing handlers to avoid duplicates
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

        # Create logs directory if it doesn't exist
        logs_dir = Path(self.config["paths"]["logs_dir"])
        logs_dir.mkdir(parents=True, exist_ok=True)

        # Create file handler for this run
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = logs_dir / f"{self.platform}_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.INFO)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        file_handler.setFormatter(formatter)

        logger.addHandler(file_handler)
        return logger

    @abstractmethod
    def _get_platform_name(self) -> str:
        """Return platform name for this importer."""
        pass

    @abstractmethod
    def validate_source(self, source_path: str) -> bool:
        """Validate input source."""
        pass

    @abstractmethod
    def extract_transactions(self, source_path: str) -> ParseResult:
        """Extract transactions from source."""
        pass

    def reconcile_transactions(self, source_path: str) -> ReconciliationReport:
        """Main reconciliation workflow with comprehensive logging. Writes nothing."""
        start_time = time.time()
        run_id = self.session.run_id

        self.logger.info(f"Starting reconciliation run: {run_id}")
        self.logger.info(f"Source: {source_path}")
        self.logger.info(f"Platform: {self.platform}")

        try:
            # Validate source
            self.logger.info("Validating source...")
            if not self.validate_source(source_path):
                error_msg = f"Invalid source: {source_path}"
                self.logger.error(error_msg)
                raise SourceFileError(error_msg)
            self.logger.info("Source validation successful")

            # Extract transactions
            self.logger.info("Extracting transactions...")
            extraction_start = time.time()
            parsed = self.extract_transactions(source_path)
            extraction_time = time.time() - extraction_start

            self.logger.info(
                f"Extracted {len(parsed.transactions)} transactions from {parsed.total_rows} rows "
                f"in {extraction_time:.2f}s, skipped {parsed.skipped}"
            )
            if not parsed.transactions:
                raise SourceFileError(
                    f"No importable transactions in {source_path} "
                    f"({parsed.total_rows} rows, skipped {parsed.skipped})"
                )

            # Match transactions
            self.logger.info("Starting transaction matching...")
            matching_start = time.time()
            match_results = self.session.matcher.match_all(parsed.transactions)
            matching_time = time.time() - matching_start

            self.logger.info(f"Completed matching in {matching_time:.2f}s")

            # Reconcile against staging and ledger
            reconcile_start = time.time()
            staging, ledger, overrides = fetch_snapshots(
                self.session.store,
                [tx.uid for tx in parsed.transactions],
                provider=self.session.provider,
                page_size=self.session.page_size,
            )
            reconcile(parsed.transactions, staging, ledger, overrides, self.session.amount_epsilon)
            reconcile_time = time.time() - reconcile_start

            suggestions = self._suggest_contacts(parsed.transactions)

            # Calculate processing time
            processing_time = time.time() - start_time

            # Create report
            report = ReconciliationReport.from_results(
                run_id=run_id,
                platform=self.platform,
                source_identifier=source_path,
                total_rows=parsed.total_rows,
                skipped=parsed.skipped,
                transactions=parsed.transactions,
                match_results=match_results,
                processing_time=processing_time,
                suggestions=suggestions,
            )

            # Log statistics
            self._log_statistics(report, match_results, extraction_time, matching_time, reconcile_time)

            self.logger.info(f"Reconciliation completed successfully: {run_id}")

            return report

        except Exception as e:
            self.logger.error(f"Reconciliation failed: {str(e)}", exc_info=True)
            raise

    def _suggest_contacts(self, transactions: List[Transaction]) -> Dict[str, List[Dict[str, Any]]]:
        """Fuzzy contact suggestions for unmatched transactions, keyed by uid."""
        matching = self.config["matching"]
        suggestions = {}
        for tx in transactions:
            if tx.is_matched:
                continue
            name = tx.customer_full_name or tx.card_holder
            found = self.session.contact_index.suggest_contacts(
                name,
                limit=int(matching["suggestion_limit"]),
                threshold=int(matching["suggestion_threshold"]),
            )
            if found:
                suggestions[tx.uid] = found
        return suggestions

    def _log_statistics(self, report: ReconciliationReport, match_results: List[MatchResult],
                        extraction_time: float, matching_time: float, reconcile_time: float):
        """Log detailed statistics about the reconciliation run."""
        stats = {
            "run_id": report.run_id,
            "platform": report.platform,
            "run_date": report.run_date.isoformat(),
            "source_file": report.source_identifier,
            "total_rows": report.total_rows,
            "total_transactions": report.total_transactions,
            "skipped": report.skipped,
            "categories": report.category_counts(),
            "matched_transactions": report.matched_transactions,
            "unmatched_transactions": report.unmatched_transactions,
            "requires_review": sum(1 for r in match_results if r.is_matched and r.requires_review),
            "unknown_status": report.unknown_status,
            "match_rate": report.matched_transactions / report.total_transactions if report.total_transactions > 0 else 0,
            "confidence_distribution": report.confidence_distribution,
            "match_method_breakdown": report.match_method_breakdown,
            "status_summary": report.status_summary,
            "succeeded_amount": str(report.succeeded_amount),
            "timing": {
                "total_processing_time": report.processing_time,
                "extraction_time": extraction_time,
                "matching_time": matching_time,
                "reconcile_time": reconcile_time,
                "transactions_per_second": report.total_transactions / report.processing_time if report.processing_time > 0 else 0
            }
        }

        self.logger.info("STATISTICS: " + json.dumps(stats, indent=2, ensure_ascii=False))
