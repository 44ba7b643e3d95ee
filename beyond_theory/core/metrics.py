from prometheus_client import Counter, Histogram, Info, generate_latest, CONTENT_TYPE_LATEST
from prometheus_fastapi_instrumentator import Instrumentator, metrics
from fastapi import Response
import logging

logger = logging.getLogger(__name__)

# Business Metrics
messages_created_total = Counter(
    'beyond_theory_messages_created_total',
    'Total number of messages created',
    ['conversation_type']
)

messages_deleted_total = Counter(
    'beyond_theory_messages_deleted_total',
    'Total number of messages deleted'
)

conversations_created_total = Counter(
    'beyond_theory_conversations_created_total',
    'Total number of conversations created',
    ['conversation_type']
)

read_markers_updated_total = Counter(
    'beyond_theory_read_markers_updated_total',
    'Total number of mark-as-read calls'
)

profiles_created_total = Counter(
    'beyond_theory_profiles_created_total',
    'Total number of user profiles registered'
)

# Cache Metrics
cache_requests_total = Counter(
    'beyond_theory_cache_requests_total',
    'Total number of cache lookups',
    ['operation', 'result']
)

# Database Metrics
database_queries_total = Counter(
    'beyond_theory_database_queries_total',
    'Total number of database operations',
    ['operation', 'table']
)

database_query_duration = Histogram(
    'beyond_theory_database_query_duration_seconds',
    'Duration of database operations',
    ['operation', 'table'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

# Error Metrics
errors_total = Counter(
    'beyond_theory_errors_total',
    'Total number of errors',
    ['error_type', 'endpoint', 'status_code']
)

# Application Info
app_info = Info(
    'beyond_theory_app_info',
    'Application information'
)


def record_message_created(is_public: bool):
    messages_created_total.labels(
        conversation_type="public" if is_public else "direct"
    ).inc()


def record_message_deleted():
    messages_deleted_total.inc()


def record_conversation_created(is_public: bool):
    conversations_created_total.labels(
        conversation_type="public" if is_public else "direct"
    ).inc()


def record_read_marker_updated():
    read_markers_updated_total.inc()


def record_profile_created():
    profiles_created_total.inc()


def record_cache_lookup(operation: str, hit: bool):
    """Record a profile cache lookup"""
    cache_requests_total.labels(
        operation=operation,
        result="hit" if hit else "miss"
    ).inc()


def record_database_query(operation: str, table: str, duration: float):
    """Record database query metrics"""
    database_queries_total.labels(operation=operation, table=table).inc()
    database_query_duration.labels(operation=operation, table=table).observe(duration)


def record_error(error_type: str, endpoint: str, status_code: int):
    """Record error metrics"""
    errors_total.labels(
        error_type=error_type,
        endpoint=endpoint,
        status_code=str(status_code)
    ).inc()


def set_app_info(version: str, environment: str):
    """Set application information"""
    app_info.info({
        'version': version,
        'environment': environment,
        'service': 'beyond-theory'
    })


def http_error_metrics(info: metrics.Info) -> None:
    """Count 4xx/5xx responses per handler"""
    status = info.modified_status
    if status and status[0] in ("4", "5"):
        record_error(
            error_type="http_error",
            endpoint=info.modified_handler,
            status_code=int(status[0]) * 100 if status.endswith("xx") else int(status)
        )


def setup_metrics(app):
    """Setup Prometheus metrics for the FastAPI app"""

    instrumentator = Instrumentator()

    instrumentator.add(metrics.default())
    instrumentator.add(http_error_metrics)

    instrumentator.instrument(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    set_app_info(version="1.0.0", environment="production")

    logger.info("Prometheus metrics setup completed")
