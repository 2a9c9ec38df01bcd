"""
Adapters built on the public SubEvent contract.
"""
from .shared import from_shared_source
from .timeout import TimeoutEvent, from_timeout

__all__ = ["TimeoutEvent", "from_timeout", "from_shared_source"]
