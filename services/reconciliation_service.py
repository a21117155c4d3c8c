"""
Reconciliation service: supplier sheet → staged price/cost updates.

Flow:
1. Parse the sheet (shared Google Sheets link or uploaded file)
2. Resolve the name, value and brand columns from the headers
3. Build entries, dropping rows without a name or a positive value
4. Match every entry against the catalog snapshot
5. Keep the best result per product, queue the rest as unmatched
6. Reviewer edits, then commits the selected rows

One engine serves both modes; `ValueMode` picks the header candidates
and the catalog column that gets written.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence
import structlog

from config import settings
from config.matching import MatchingConfig
from exceptions import (
    InvalidSheetUrlError,
    InvalidStatusTransitionError,
    ReconciliationRunNotFoundError,
    StagedResultNotFoundError,
    UnmatchedEntryNotFoundError,
)
from integrations.google_sheets import fetch_sheet_csv, to_csv_export_url
from models.manual_mapping import ManualMapping, ManualMappingResult
from models.product import ProductResponse, ProductUpdate, ValueUpdate
from models.reconciliation import (
    CommitError,
    CommitResult,
    MatchOptions,
    MatchResult,
    ReconcileResult,
    ReconciliationRun,
    RunStatus,
    SheetEntry,
    StagedResultUpdate,
    ValueMode,
)
from parsers.sheet_parser import ParsedSheet, parse_csv, parse_sheet_file, smart_parse_int
from services import preview_cache_service as run_store
from services.matcher_service import CandidateMatcher, get_matcher
from services.product_service import ProductService, get_product_service
from utils.text_utils import normalize

logger = structlog.get_logger(__name__)


@dataclass
class SheetColumns:
    """Header roles resolved for one sheet."""
    name: Optional[str] = None
    value: Optional[str] = None
    brand: Optional[str] = None          # per-row brand column ("Marca")
    header_brand: str = ""               # a header that is itself a brand name
    warnings: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.name is not None and self.value is not None


def _header_key(header: str) -> str:
    return normalize(header).lower()


class ReconciliationService:
    """
    Reconciliation orchestrator.

    reconcile() and commit() are the engine; the run methods wrap them with
    sheet loading and an in-memory review state per run.
    """

    def __init__(
        self,
        matcher: Optional[CandidateMatcher] = None,
        product_service: Optional[ProductService] = None
    ):
        self.matcher = matcher or get_matcher()
        self._product_service = product_service

    @property
    def config(self) -> MatchingConfig:
        return self.matcher.config

    @property
    def products(self) -> ProductService:
        # Resolved lazily so reconcile() works without a database
        if self._product_service is None:
            self._product_service = get_product_service()
        return self._product_service

    # ===================
    # ENGINE
    # ===================

    def resolve_columns(
        self,
        headers: Sequence[str],
        mode: ValueMode,
        catalog: Sequence[ProductResponse] = ()
    ) -> SheetColumns:
        """
        Decide which headers hold the name, value and brand.

        Header text is compared case- and accent-insensitively. Missing
        name or value columns are reported as warnings, never guessed.
        """
        columns = SheetColumns()
        name_candidates = set(self.config.name_header_candidates)
        value_candidates = set(self.config.value_header_candidates[mode.value])
        brand_candidates = set(self.config.brand_header_candidates)

        for header in headers:
            key = _header_key(header)
            if columns.name is None and key in name_candidates:
                columns.name = header
            elif columns.value is None and key in value_candidates:
                columns.value = header
            elif columns.brand is None and key in brand_candidates:
                columns.brand = header

        if columns.name is None:
            columns.warnings.append(
                "No product name column found. Expected one of: "
                + ", ".join(self.config.name_header_candidates)
            )
        if columns.value is None:
            columns.warnings.append(
                f"No {mode.value} column found. Expected one of: "
                + ", ".join(self.config.value_header_candidates[mode.value])
            )

        known_brands = {
            self.matcher.normalizer.canonicalize(p.brand): p.brand
            for p in catalog if p.brand
        }
        for header in headers:
            brand_key = self.matcher.normalizer.canonicalize(header)
            if brand_key and brand_key in known_brands:
                columns.header_brand = header.strip()
                break

        if columns.resolved and columns.brand is None and not columns.header_brand:
            columns.warnings.append(
                "No brand detected in the sheet; matching against the whole catalog"
            )

        return columns

    def build_entries(
        self,
        rows: Sequence[dict],
        columns: SheetColumns
    ) -> list[SheetEntry]:
        """
        Turn sheet rows into entries.

        Rows with an empty name or a missing, unparseable or non-positive
        value are expected noise and dropped without a warning.
        """
        if not columns.resolved:
            return []

        entries = []
        for row in rows:
            name = str(row.get(columns.name, "") or "").strip()
            value = smart_parse_int(row.get(columns.value))
            if not name or value is None or value <= 0:
                continue

            brand = columns.header_brand
            if columns.brand is not None:
                brand = str(row.get(columns.brand, "") or "").strip() or brand

            entries.append(SheetEntry(brand=brand, name=name, value=value))

        return entries

    def reconcile(
        self,
        rows: Sequence[dict],
        headers: Sequence[str],
        catalog: Sequence[ProductResponse],
        mode: ValueMode = ValueMode.PRICE,
        options: Optional[MatchOptions] = None
    ) -> ReconcileResult:
        """
        Match sheet rows against the catalog and stage proposals.

        The catalog is not modified.

        Returns:
            ReconcileResult with staged updates (one per product),
            unmatched entries (highest value first) and warnings
        """
        options = (options or MatchOptions()).model_copy(update={"mode": mode})
        columns = self.resolve_columns(headers, mode, catalog)

        logger.info(
            "sheet_columns_resolved",
            name_column=columns.name,
            value_column=columns.value,
            brand_column=columns.brand,
            header_brand=columns.header_brand or None
        )

        if not columns.resolved:
            logger.warning("sheet_columns_missing", warnings=columns.warnings)
            return ReconcileResult(warnings=columns.warnings)

        warnings = list(columns.warnings)
        if not catalog:
            warnings.append("The catalog is empty; every row will be unmatched")

        entries = self.build_entries(rows, columns)

        best_by_product: dict[int, MatchResult] = {}
        unmatched: list[SheetEntry] = []

        for entry in entries:
            outcome = self.matcher.match(entry, catalog, options)
            if outcome.unmatched:
                unmatched.append(entry)
                continue
            for result in outcome.matched:
                existing = best_by_product.get(result.product_id)
                if existing is None or result.score >= existing.score:
                    best_by_product[result.product_id] = result

        unmatched.sort(key=lambda e: e.value, reverse=True)

        logger.info(
            "reconciliation_complete",
            mode=mode.value,
            rows=len(rows),
            entries=len(entries),
            staged=len(best_by_product),
            unmatched=len(unmatched)
        )

        return ReconcileResult(
            staged=list(best_by_product.values()),
            unmatched=unmatched,
            warnings=warnings,
            entries_count=len(entries),
        )

    def commit(
        self,
        results: Sequence[MatchResult],
        mode: ValueMode = ValueMode.PRICE
    ) -> CommitResult:
        """
        Apply the selected results through the catalog.

        Partial failure is normal: every product is reported as updated
        or failed.
        """
        items = [
            ValueUpdate(product_id=r.product_id, new_value=r.proposed_value)
            for r in results
            if r.selected
        ]
        logger.info("commit_started", mode=mode.value, selected=len(items))

        if not items:
            return CommitResult()

        bulk = self.products.bulk_update_values(items, mode)

        result = CommitResult(
            updated_count=bulk.updated,
            updated_ids=bulk.updated_ids,
            errors=[CommitError(product_id=e.product_id, error=e.error) for e in bulk.errors],
        )

        logger.info(
            "commit_complete",
            updated=result.updated_count,
            failed=len(result.errors)
        )
        return result

    # ===================
    # RUNS
    # ===================

    def analyze_sheet(
        self,
        url: str,
        mode: ValueMode = ValueMode.PRICE,
        apply_all_variants: Optional[bool] = None
    ) -> ReconciliationRun:
        """
        Analyze a shared Google Sheets link.

        An unusable link is an input problem: the run comes back EMPTY
        with a warning. Download failures raise SheetFetchError.
        """
        if not to_csv_export_url(url):
            logger.warning("invalid_sheet_url", url=url)
            run = self._new_run(url, mode, apply_all_variants)
            run.warnings = [InvalidSheetUrlError(url).message]
            run.status = RunStatus.EMPTY
            run_store.store_run(run)
            return run

        return self._analyze(
            lambda: parse_csv(fetch_sheet_csv(url)),
            url,
            mode,
            apply_all_variants
        )

    def analyze_upload(
        self,
        content: bytes,
        filename: str,
        mode: ValueMode = ValueMode.PRICE,
        apply_all_variants: Optional[bool] = None
    ) -> ReconciliationRun:
        """Analyze an uploaded .csv or .xlsx file."""
        return self._analyze(
            lambda: parse_sheet_file(content, filename),
            filename,
            mode,
            apply_all_variants
        )

    def _new_run(
        self,
        source: str,
        mode: ValueMode,
        apply_all_variants: Optional[bool]
    ) -> ReconciliationRun:
        if apply_all_variants is None:
            apply_all_variants = settings.default_apply_all_variants
        return ReconciliationRun(
            run_id=run_store.new_run_id(),
            mode=mode,
            options=MatchOptions(apply_all_variants=apply_all_variants, mode=mode),
            source=source,
        )

    def _analyze(
        self,
        load_sheet: Callable[[], ParsedSheet],
        source: str,
        mode: ValueMode,
        apply_all_variants: Optional[bool]
    ) -> ReconciliationRun:
        run = self._new_run(source, mode, apply_all_variants)
        run.status = RunStatus.ANALYZING
        run_store.store_run(run)

        logger.info("reconciliation_started", run_id=run.run_id, source=source, mode=mode.value)

        try:
            sheet = load_sheet()
            catalog = self.products.get_all()
        except Exception:
            run_store.delete_run(run.run_id)
            raise

        if sheet.is_empty:
            result = ReconcileResult(warnings=["The sheet has no data"])
        else:
            result = self.reconcile(sheet.rows, sheet.headers, catalog, mode, run.options)

        run.staged = result.staged
        run.unmatched = result.unmatched
        run.warnings = result.warnings
        run.status = RunStatus.EMPTY if result.is_empty else RunStatus.STAGED
        run_store.store_run(run)

        logger.info("run_analyzed", run_id=run.run_id, status=run.status.value)
        return run

    def get_run(self, run_id: str) -> ReconciliationRun:
        """
        Raises:
            ReconciliationRunNotFoundError: If the run doesn't exist or expired
        """
        run = run_store.retrieve_run(run_id)
        if run is None:
            raise ReconciliationRunNotFoundError(run_id)
        return run

    def delete_run(self, run_id: str) -> None:
        if not run_store.delete_run(run_id):
            raise ReconciliationRunNotFoundError(run_id)
        logger.info("run_deleted", run_id=run_id)

    def update_staged(
        self,
        run_id: str,
        product_id: int,
        data: StagedResultUpdate
    ) -> MatchResult:
        """Edit a staged row's proposed value or selection."""
        run = self._editable_run(run_id)
        result = self._staged_row(run, product_id)

        if data.proposed_value is not None and data.proposed_value != result.proposed_value:
            result.proposed_value = data.proposed_value
            result.manually_edited = True
        if data.selected is not None:
            result.selected = data.selected

        run_store.store_run(run)
        logger.info(
            "staged_row_updated",
            run_id=run_id,
            product_id=product_id,
            proposed_value=result.proposed_value,
            selected=result.selected
        )
        return result

    def select_all(self, run_id: str, selected: bool = True) -> ReconciliationRun:
        run = self._editable_run(run_id)
        for result in run.staged:
            result.selected = selected
        run_store.store_run(run)
        return run

    def remove_staged(self, run_id: str, product_id: int) -> ReconciliationRun:
        run = self._editable_run(run_id)
        row = self._staged_row(run, product_id)
        run.staged = [r for r in run.staged if r is not row]
        run_store.store_run(run)
        logger.info("staged_row_removed", run_id=run_id, product_id=product_id)
        return run

    def commit_run(self, run_id: str) -> ReconciliationRun:
        """
        Commit a run's selected rows.

        Applied rows leave the run; failed rows stay staged and selected
        so the reviewer can retry. The run returns to IDLE once no staged
        rows are left.

        Raises:
            InvalidStatusTransitionError: If the run is not STAGED
        """
        run = self.get_run(run_id)
        if run.status != RunStatus.STAGED:
            raise InvalidStatusTransitionError(run.status.value, RunStatus.COMMITTING.value)

        run.status = RunStatus.COMMITTING
        run_store.store_run(run)

        try:
            result = self.commit(run.staged, run.mode)
        except Exception:
            run.status = RunStatus.STAGED
            run_store.store_run(run)
            raise

        applied = set(result.updated_ids)
        run.staged = [r for r in run.staged if r.product_id not in applied]
        run.last_commit = result
        run.status = RunStatus.STAGED if run.staged else RunStatus.IDLE
        run_store.store_run(run)

        logger.info(
            "run_committed",
            run_id=run_id,
            updated=result.updated_count,
            failed=len(result.errors),
            status=run.status.value
        )
        return run

    def bind_unmatched(self, run_id: str, mapping: ManualMapping) -> ManualMappingResult:
        """
        Resolve an unmatched entry by hand.

        Writes the value straight to the chosen product. With `rename`,
        the product also takes the sheet label so the next import of the
        same sheet matches it exactly. A label repeated in the sheet is
        told apart by `original_brand` / `original_value`; without them the
        first row with the label is bound.
        """
        run = self._editable_run(run_id)

        entry = next(
            (e for e in run.unmatched if mapping.identifies(e.name, e.brand, e.value)),
            None
        )
        if entry is None:
            raise UnmatchedEntryNotFoundError(mapping.original_key)

        value = mapping.value if mapping.value is not None else entry.value
        update = ProductUpdate(**{run.mode.value: value})
        if mapping.rename:
            update.name = entry.name

        product = self.products.update(mapping.mapped_product_id, update)

        run.unmatched = [e for e in run.unmatched if e is not entry]
        # The direct write supersedes any staged proposal for the product
        run.staged = [r for r in run.staged if r.product_id != product.id]
        if run.status == RunStatus.STAGED and not run.staged and not run.unmatched:
            run.status = RunStatus.IDLE
        run_store.store_run(run)

        logger.info(
            "unmatched_entry_bound",
            run_id=run_id,
            name=entry.name,
            product_id=product.id,
            renamed=mapping.rename
        )

        return ManualMappingResult(product=product, remaining_unmatched=len(run.unmatched))

    def _editable_run(self, run_id: str) -> ReconciliationRun:
        run = self.get_run(run_id)
        if run.status in (RunStatus.ANALYZING, RunStatus.COMMITTING):
            raise InvalidStatusTransitionError(run.status.value, "EDIT")
        return run

    def _staged_row(self, run: ReconciliationRun, product_id: int) -> MatchResult:
        row = next((r for r in run.staged if r.product_id == product_id), None)
        if row is None:
            raise StagedResultNotFoundError(product_id)
        return row


# Singleton instance for convenience
_reconciliation_service: Optional[ReconciliationService] = None


def get_reconciliation_service() -> ReconciliationService:
    """Get or create ReconciliationService instance."""
    global _reconciliation_service
    if _reconciliation_service is None:
        _reconciliation_service = ReconciliationService()
    return _reconciliation_service
