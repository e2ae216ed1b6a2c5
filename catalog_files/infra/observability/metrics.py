from prometheus_client import Counter, Histogram, make_asgi_app

# Low-cardinality labels only: backend family, operation name and outcome kind.
OPERATIONS = Counter(
    "object_io_operations_total",
    "Total object storage operations",
    ["backend", "operation", "outcome"],
)

LATENCY = Histogram(
    "object_io_operation_duration_seconds",
    "Object storage operation latency in seconds",
    ["backend", "operation"],
)

CLIENTS_CREATED = Counter(
    "object_io_clients_created_total",
    "Remote client handles constructed by the client registry",
    ["backend"],
)

# /metrics ASGI app
metrics_app = make_asgi_app()
