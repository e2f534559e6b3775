"""
                Food Ordering Platform

Menu pricing, cart and checkout backend for an online food-ordering
platform. Every client-submitted price is recomputed server-side
before an order is persisted.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
