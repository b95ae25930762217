"""Search aggregation components."""

from .aggregator import SearchAggregator
from .channels import search_channels
from .context import SearchContext
from .messages import search_direct_messages, search_messages
from .threads import search_threads
from .users import search_users

__all__ = [
    "SearchAggregator",
    "SearchContext",
    "search_channels",
    "search_direct_messages",
    "search_messages",
    "search_threads",
    "search_users",
]
