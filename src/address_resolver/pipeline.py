"""
Batch address resolution.

BatchPipeline turns imported records into classified AddressRows:

    prepare rows -> distinct request queue -> worker pool -> classify -> statistics

Rows sharing a canonical address share one lookup. Workers drain a shared
queue and run the whole ensemble chain for one request sequentially; the
result cache is consulted first. ``cancel()`` stops workers from taking
new work; in-flight provider calls finish on their own timeout.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from tqdm import tqdm

from .geocoding.address_kind import build_request
from .geocoding.classifier import skip_reason
from .geocoding.models import AddressRequest, AddressRow, GeocodeResult, Status, StreetNumberRequest
from .geocoding.normalizers import normalize_street_text
from .geocoding.statistics import BatchStatistics
from .geocoding.telemetry import safe_emit
from .resources import GeocodingResources
from .settings import Settings
from .tabular.columns import ColumnRoleResolver, ColumnRoles, extract_raw_address, parse_prior_coordinates
from .tabular.io import default_output_path, export_rows, read_records
from .utils.pipeline_mixin import PipelineMixin

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    rows: list[AddressRow]
    statistics: BatchStatistics
    cancelled: bool = False


@dataclass
class _Resolution:
    """Per-key outcome of the worker pool."""
    results: dict[str, Optional[GeocodeResult]]
    failed: set[str]


class BatchPipeline(PipelineMixin):
    """Resolves batches of address records against shared resources."""

    STAGE = 'resolve'

    def __init__(self, resources: GeocodingResources, workers: int = 3, progress: bool = True):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.resources = resources
        self.workers = workers
        self.progress = progress
        self._cancel = threading.Event()
        self._roles: Optional[ColumnRoles] = None

    @classmethod
    def from_settings(cls, settings: Settings, progress: bool = True) -> "BatchPipeline":
        return cls(GeocodingResources.from_settings(settings), workers=settings.workers, progress=progress)

    def cancel(self) -> None:
        """Stop dispatching new lookups. Safe to call from any thread."""
        logger.warning("Batch cancellation requested")
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # ------------------------------------------------------------------
    # Stage 1: rows
    # ------------------------------------------------------------------

    def prepare_row(self, row_id: int, record: Mapping[str, Any], roles: ColumnRoles) -> AddressRow:
        """Build a row, classify its kind and skip it if it cannot be looked up."""
        res = self.resources
        address = extract_raw_address(record, roles, default_city=res.profile.city_name)
        row = AddressRow(
            row_id=row_id,
            original=dict(record),
            address=address,
            prior_coords=parse_prior_coordinates(record, roles),
        )

        missing = res.normalizer.is_address_missing(address)
        if not missing:
            canonical = res.normalizer.normalize(address)
            kind, request = build_request(address, canonical)
            row = replace(row, canonical=canonical, kind=kind, request=request)

        reason = skip_reason(row, address_missing=missing)
        if reason is not None:
            return res.classifier.classify_skipped(row, reason)
        return row

    def prepare_rows(self, records: Iterable[Mapping[str, Any]], roles: ColumnRoles) -> list[AddressRow]:
        return [self.prepare_row(i, record, roles) for i, record in enumerate(records)]

    # ------------------------------------------------------------------
    # Stage 2: lookups
    # ------------------------------------------------------------------

    @staticmethod
    def distinct_requests(rows: Iterable[AddressRow]) -> dict[str, AddressRequest]:
        """Pending requests keyed by canonical key, in first-seen order."""
        requests: dict[str, AddressRequest] = {}
        for row in rows:
            if row.status is Status.PENDING and row.request is not None:
                requests.setdefault(row.request.key, row.request)
        return requests

    def _resolve_one(self, request: AddressRequest) -> Optional[GeocodeResult]:
        cache = self.resources.cache
        cached = cache.get(request.key)
        if cached is not None:
            return cached
        result = self.resources.ensemble.geocode(request)
        if result is not None:
            cache.set(request.key, result)
        return result

    def _worker(self, work: queue.Queue, resolution: _Resolution, bar: tqdm) -> None:
        while not self._cancel.is_set():
            try:
                key, request = work.get_nowait()
            except queue.Empty:
                return
            try:
                resolution.results[key] = self._resolve_one(request)
            except Exception:
                logger.exception(f"Lookup failed for {key!r}")
                resolution.failed.add(key)
            finally:
                bar.update(1)

    def resolve_requests(self, requests: Mapping[str, AddressRequest]) -> _Resolution:
        """Resolve distinct requests with a pool of ``workers`` threads."""
        work: queue.Queue = queue.Queue()
        for item in requests.items():
            work.put(item)

        resolution = _Resolution(results={}, failed=set())
        if not requests:
            return resolution

        n_workers = min(self.workers, len(requests))
        with tqdm(total=len(requests), desc="Resolving addresses", disable=not self.progress) as bar:
            with ThreadPoolExecutor(max_workers=n_workers) as executor:
                futures = [executor.submit(self._worker, work, resolution, bar) for _ in range(n_workers)]
                for future in as_completed(futures):
                    future.result()

        logger.info(
            f"Resolved {sum(r is not None for r in resolution.results.values())}/{len(requests)} "
            f"distinct addresses ({len(resolution.failed)} errors)"
        )
        return resolution

    # ------------------------------------------------------------------
    # Stage 3: classification and statistics
    # ------------------------------------------------------------------

    def classify_rows(self, rows: Iterable[AddressRow], resolution: _Resolution) -> list[AddressRow]:
        classifier = self.resources.classifier
        classified = []
        for row in rows:
            if row.status is not Status.PENDING:
                classified.append(row)
                continue
            key = row.request.key
            if key in resolution.failed:
                row = classifier.classify_unresolved(row, "geocoding_error")
            elif key not in resolution.results:
                row = classifier.classify_unresolved(row, "cancelled")
            else:
                row = classifier.classify(row, resolution.results[key])
            classified.append(row)
        return classified

    def process_records(
        self, records: Iterable[Mapping[str, Any]], roles: Optional[ColumnRoles] = None
    ) -> BatchOutcome:
        """
        Resolve and classify a batch of records.

        Args:
            records: Row records as string maps, in table order
            roles: Column roles; detected from the first record's keys if omitted

        Returns:
            BatchOutcome with rows in input order, every one in a terminal status
        """
        records = list(records)
        if roles is None:
            roles = ColumnRoleResolver().resolve(records[0].keys() if records else [])
        self._roles = roles

        telemetry = self.resources.telemetry
        safe_emit(telemetry, "batch_started", total_rows=len(records))
        logger.info(f"Processing {len(records)} rows with {self.workers} workers")

        rows = self.prepare_rows(records, roles)
        resolution = self.resolve_requests(self.distinct_requests(rows))
        rows = self.classify_rows(rows, resolution)

        statistics = BatchStatistics()
        rows = [statistics.add(row) for row in rows]
        statistics.log_summary()

        cancelled = self.cancelled
        if cancelled:
            logger.warning("Batch was cancelled; unresolved rows are marked for manual handling")
        safe_emit(telemetry, "batch_completed", total_rows=len(rows), cancelled=cancelled)
        return BatchOutcome(rows=rows, statistics=statistics, cancelled=cancelled)

    # ------------------------------------------------------------------
    # File runs
    # ------------------------------------------------------------------

    def _export(self, outcome: BatchOutcome, output_path: Path) -> Path:
        return export_rows(outcome.rows, self._roles, output_path)

    def _load_pipeline(self, input_path: Path, output_path: Path):
        return [
            ('Read Table', read_records, {'path': input_path}),
            ('Resolve Addresses', self.process_records, {}),
            ('Export Table', self._export, {'output_path': output_path}),
        ]

    def run_file(self, input_path: Path | str, output_path: Path | str | None = None) -> Path:
        """Read a CSV/XLSX table, resolve it and write ``<stem>-fixed<suffix>``."""
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else default_output_path(input_path)
        return self._execute_pipeline(progress=self.progress, input_path=input_path, output_path=output_path)

    # ------------------------------------------------------------------
    # Single lookups
    # ------------------------------------------------------------------

    def lookup_address(self, street: str, house_number: int) -> Optional[GeocodeResult]:
        """Resolve one street and number outside a batch."""
        street = normalize_street_text(street)
        if not street or house_number <= 0:
            return None
        city = self.resources.profile.city_name
        request = StreetNumberRequest(
            street=street, house_number=house_number, canonical_text=f"{street} {house_number}, {city}"
        )
        return self._resolve_one(request)

    def search_streets(self, query: str, max_results: int = 20) -> list[str]:
        return self.resources.street_names.search(query, max_results=max_results)
