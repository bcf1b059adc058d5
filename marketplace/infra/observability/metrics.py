from prometheus_client import Counter, Histogram


# Order Metrics
orders_placed_total = Counter("marketplace_orders_placed_total", "Total order placements", ["status"])
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution",
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, float("inf")],
)

# Stock Metrics
stock_reservation_failures = Counter(
    "marketplace_stock_reservation_failure", "Conditional inventory reservations that matched no listing"
)

# Line lifecycle
line_transitions_total = Counter(
    "marketplace_line_transitions_total", "Order line status transitions", ["from_status", "to_status"]
)
line_cancellations_total = Counter("marketplace_line_cancellations_total", "Order lines cancelled", ["refunded"])

# Gateway Metrics
payouts_initiated_total = Counter("marketplace_payouts_initiated_total", "Seller payouts accepted by the gateway")
refunds_initiated_total = Counter("marketplace_refunds_initiated_total", "Line refunds accepted by the gateway")
payment_reversals_total = Counter("marketplace_payment_reversals_total", "Payments reversed as a whole")
gateway_call_failures_total = Counter(
    "marketplace_gateway_call_failures_total", "Gateway calls that failed after all retries", ["operation"]
)
gateway_retries_total = Counter("marketplace_gateway_retries_total", "Gateway call retries", ["operation"])

# Side effects
notification_failures_total = Counter(
    "marketplace_notification_failures_total", "Notifications or emails dropped after all retries", ["channel"]
)

# Performance Metrics
unit_of_work_duration = Histogram(
    "marketplace_unit_of_work_seconds", "Order lifecycle operation duration", ["operation"]
)
