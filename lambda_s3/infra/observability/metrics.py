from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

from lambda_s3.common.config import get_settings

# Low-cardinality labels only: outcome is "ok" or an ErrorKind value, never bucket/key.
DECODES = Counter(
    "lambda_s3_decode_total",
    "Multipart request decode attempts",
    ["outcome"],
)

DECODED_BYTES = Histogram(
    "lambda_s3_decoded_bytes",
    "Total file bytes extracted per decoded request",
    buckets=(1_024, 65_536, 1_048_576, 10_485_760, 52_428_800, float("inf")),
)

STORAGE_OPERATIONS = Counter(
    "lambda_s3_storage_operations_total",
    "Storage gateway operations",
    ["operation", "outcome"],
)


def _enabled() -> bool:
    return bool(get_settings().ENABLE_METRICS)


def record_decode(outcome: str, total_bytes: int | None = None) -> None:
    if not _enabled():
        return
    DECODES.labels(outcome).inc()
    if total_bytes is not None:
        DECODED_BYTES.observe(total_bytes)


def record_storage(operation: str, outcome: str) -> None:
    if not _enabled():
        return
    STORAGE_OPERATIONS.labels(operation, outcome).inc()


def render_metrics() -> bytes:
    """Text exposition of the default registry, for log shipping or push."""
    return generate_latest(REGISTRY)
