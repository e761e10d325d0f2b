"""Service utilities."""

from .amounts import parse_amount, quantize_cents
from .json_utils import parse_json_from_text, parse_json_from_response, coerce_int_list
from .date_utils import parse_date
from .retry_utils import BackoffStrategy, compute_backoff_delay, is_rate_limit_error, with_retry

__all__ = [
    "parse_amount",
    "quantize_cents",
    "parse_json_from_text",
    "parse_json_from_response",
    "coerce_int_list",
    "parse_date",
    "BackoffStrategy",
    "compute_backoff_delay",
    "is_rate_limit_error",
    "with_retry",
]
