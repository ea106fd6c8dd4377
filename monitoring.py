"""Prometheus metrics and monitoring setup."""
from prometheus_client import Counter, Histogram, generate_latest

# HTTP
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

http_request_errors_total = Counter(
    'http_request_errors_total',
    'Total HTTP request errors',
    ['method', 'endpoint', 'error_type']
)

# Minting pipeline
tickets_issued_total = Counter(
    'tickets_issued_total',
    'Total tickets issued'
)

mint_jobs_total = Counter(
    'mint_jobs_total',
    'Mint jobs finished, by outcome',
    ['status']
)

mint_job_duration_seconds = Histogram(
    'mint_job_duration_seconds',
    'Time from claim to outcome for a mint job',
    buckets=(1, 5, 15, 30, 60, 120, 300, 600)
)

metadata_uploads_total = Counter(
    'metadata_uploads_total',
    'Metadata documents uploaded to content-addressed storage',
    ['outcome']
)

mint_jobs_reset_total = Counter(
    'mint_jobs_reset_total',
    'Failed mint jobs reset to pending'
)

stale_mint_jobs_total = Counter(
    'stale_mint_jobs_total',
    'Mint jobs failed by the stale-processing sweep'
)


def get_metrics():
    """Get Prometheus metrics as string."""
    return generate_latest().decode('utf-8')
