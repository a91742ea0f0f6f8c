"""PriceWatch: resilient product price tracking."""

__version__ = "0.1.0"
