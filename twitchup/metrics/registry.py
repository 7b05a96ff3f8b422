from prometheus_client import Counter, Gauge, Histogram

sweep_duration_seconds = Histogram('sweep_duration_seconds', 'Duration of a sweep over all watched channels')
sweep_errors_total = Counter('sweep_errors_total', 'Number of per-channel errors during sweeps')
sweeps_skipped_total = Counter('sweeps_skipped_total', 'Timer ticks skipped because a sweep was still running')
last_sweep_timestamp = Gauge('last_sweep_timestamp', 'Unix timestamp of last completed sweep')

watched_channels = Gauge('watched_channels', 'Number of watched channels')
live_channels = Gauge('live_channels', 'Number of watched channels currently live')

notifications_sent_total = Counter('notifications_sent_total', 'Live notifications dispatched')
notifications_suppressed_total = Counter('notifications_suppressed_total', 'Live notifications suppressed as already sent for the session')
sink_delivery_failures_total = Counter('sink_delivery_failures_total', 'Failed deliveries per destination', ['destination'])
