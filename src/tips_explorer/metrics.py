from prometheus_client import REGISTRY, Counter, Histogram, push_to_gateway
from loguru import logger

# Block cache metrics
BLOCK_CACHE_LOOKUPS = Counter(
    'explorer_block_cache_lookups_total',
    'Block cache lookups by outcome (hit, miss, expired)',
    ['outcome']
)

BLOCK_CACHE_WRITES = Counter(
    'explorer_block_cache_writes_total',
    'Block records persisted, by reason (fetch, backfill)',
    ['reason']
)

BACKFILLED_TRANSACTIONS = Counter(
    'explorer_backfilled_transactions_total',
    'Cached transactions that gained a bundle id on backfill'
)

# Enrichment metrics
ENRICHMENT_RESOLUTIONS = Counter(
    'explorer_enrichment_resolutions_total',
    'Transaction enrichment lookups by outcome (bundle, no_bundle, error)',
    ['outcome']
)

MALFORMED_DOCUMENTS = Counter(
    'explorer_malformed_documents_total',
    'Stored documents that failed to decode',
    ['document_type']
)

# RPC metrics
RPC_REQUESTS = Counter(
    'explorer_rpc_requests_total',
    'Total number of RPC requests made',
    ['method']
)

RPC_ERRORS = Counter(
    'explorer_rpc_errors_total',
    'Total number of RPC errors encountered',
    ['method']
)

RPC_LATENCY = Histogram(
    'explorer_rpc_latency_seconds',
    'RPC request latency',
    ['method'],
    buckets=[0.025, 0.05, 0.075, 0.1, 0.15, 0.2, 0.3, 0.5, 1.0, 5.0, 10.0]
)

def push_metrics(gateway: str, job: str = "tips-explorer"):
    """Push the current metric values to a Prometheus Pushgateway

    Called once when a CLI command finishes.

    Args:
        gateway (str): Pushgateway address, e.g. "localhost:9091"
        job (str): Job label the metrics are grouped under
    """
    logger.debug(f"Pushing metrics to Prometheus Pushgateway at {gateway}")
    push_to_gateway(gateway, job=job, registry=REGISTRY)
