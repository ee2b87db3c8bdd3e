from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from loguru import logger

from .data_types import BundleHistory, MeterBundleResult
from .metrics import ENRICHMENT_RESOLUTIONS
from .stores import BundleHistoryStore, TransactionIndex


@dataclass(frozen=True)
class Enrichment:
    bundle_id: Optional[str] = None
    execution_time_us: Optional[int] = None

    @property
    def found(self) -> bool:
        return self.bundle_id is not None


NOT_FOUND = Enrichment()

# Picks the bundle a transaction is attributed to when the index lists several
BundleSelector = Callable[[Sequence[str]], Optional[str]]


def first_bundle_id(bundle_ids: Sequence[str]) -> Optional[str]:
    # A transaction can sit in several bundles; only the first is surfaced for now
    return bundle_ids[0] if bundle_ids else None


def find_simulation_results(history: BundleHistory) -> Optional[List[MeterBundleResult]]:
    """Result set of the first Received event that carries a simulation

    Later lifecycle events (inclusion, drop) carry no simulation numbers, so
    they are skipped rather than treated as the current state.
    """
    for event in history.history:
        results = event.simulation_results
        if results is not None:
            return results
    return None


def match_result(results: List[MeterBundleResult], tx_hash: str) -> Optional[MeterBundleResult]:
    # Hash casing differs between the RPC node and the bundle pipeline
    wanted = tx_hash.lower()
    for result in results:
        if result.tx_hash.lower() == wanted:
            return result
    return None


class BundleEnrichmentResolver:
    """Resolves the bundle id and simulated execution time of a transaction

    Lookups go through the transaction index first, then the bundle history
    store. Resolution is best-effort: any failure is logged and reported as
    NOT_FOUND so that block resolution never blocks on metadata.
    """

    def __init__(
        self,
        transaction_index: TransactionIndex,
        bundle_history_store: BundleHistoryStore,
        select_bundle_id: BundleSelector = first_bundle_id,
    ) -> None:
        self.transaction_index = transaction_index
        self.bundle_history_store = bundle_history_store
        self.select_bundle_id = select_bundle_id

    async def resolve(self, tx_hash: str) -> Enrichment:
        try:
            enrichment = await self._resolve(tx_hash)
        except Exception as e:
            ENRICHMENT_RESOLUTIONS.labels(outcome='error').inc()
            logger.warning(f"Enrichment failed for transaction {tx_hash}: {type(e).__name__}: {str(e)}")
            return NOT_FOUND

        ENRICHMENT_RESOLUTIONS.labels(outcome='bundle' if enrichment.found else 'no_bundle').inc()
        return enrichment

    async def _resolve(self, tx_hash: str) -> Enrichment:
        entry = await self.transaction_index.get(tx_hash)
        if entry is None or not entry.bundle_ids:
            return NOT_FOUND

        bundle_id = self.select_bundle_id(entry.bundle_ids)
        if bundle_id is None:
            return NOT_FOUND

        history = await self.bundle_history_store.get(bundle_id)
        if history is None:
            # The bundle id is still worth surfacing without timing data
            return Enrichment(bundle_id=bundle_id)

        results = find_simulation_results(history)
        if results is None:
            return Enrichment(bundle_id=bundle_id)

        matched = match_result(results, tx_hash)
        return Enrichment(
            bundle_id=bundle_id,
            execution_time_us=matched.execution_time_us if matched else None,
        )
