"""
Prometheus metrics: orders accepted, lifecycle transitions (applied and rejected),
lost take-next races, active queue size per status.
"""
from prometheus_client import Counter, Gauge, generate_latest

# Customer side
orders_created_total = Counter(
    "orders_created_total",
    "Total orders accepted from customers",
)

# Staff side: lifecycle outcomes
order_transitions_total = Counter(
    "order_transitions_total",
    "Total order status transitions applied",
    ["to_status"],
)
order_transitions_rejected_total = Counter(
    "order_transitions_rejected_total",
    "Total status changes rejected because the current status does not allow them",
    ["current_status", "attempted_status"],
)
order_claim_conflicts_total = Counter(
    "order_claim_conflicts_total",
    "Total take-next attempts that lost the claim race and re-selected",
)

# Queue size - refreshed on every scrape
active_orders = Gauge(
    "active_orders",
    "Number of not-yet-completed orders",
    ["status"],
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
