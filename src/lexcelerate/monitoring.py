"""Monitoring configuration for the bot."""
from prometheus_client import Counter, Gauge, start_http_server

# Session metrics
active_sessions = Gauge(
    "lexcelerate_active_sessions",
    "Number of chats with an active practice session",
)

# Catalogue metrics
words_added = Counter(
    "lexcelerate_words_added_total",
    "Total number of words added to catalogues",
)

# Practice metrics
rounds_started = Counter(
    "lexcelerate_rounds_started_total",
    "Total number of practice rounds started",
)

rounds_completed = Counter(
    "lexcelerate_rounds_completed_total",
    "Total number of practice rounds resolved with a correct answer",
    ["first_try"],
)

submissions = Counter(
    "lexcelerate_submissions_total",
    "Total number of spelling submissions",
    ["result"],
)

# Error metrics
error_count = Counter(
    "lexcelerate_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
