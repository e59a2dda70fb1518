"""Prometheus metrics for the election tracker."""
from prometheus_client import Counter, Gauge, Histogram

votes_cast = Counter(
    "tracker_votes_cast_total",
    "Total number of votes recorded"
)
vote_errors = Counter(
    "tracker_vote_errors_total",
    "Total number of rejected or failed vote attempts",
    ["error_type"]
)
candidate_mutations = Counter(
    "tracker_candidate_mutations_total",
    "Total number of candidate roster changes",
    ["operation"]
)
broadcasts_sent = Counter(
    "tracker_broadcasts_total",
    "Total number of stats snapshots fanned out"
)
observers_dropped = Counter(
    "tracker_observers_dropped_total",
    "Observer sessions dropped by the broadcaster",
    ["reason"]
)
observers_connected = Gauge(
    "tracker_observers_connected",
    "Currently connected observer sessions"
)
generator_running = Gauge(
    "tracker_generator_running",
    "1 while the synthetic candidate generator is running"
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)
