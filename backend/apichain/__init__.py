"""API request-chain engine: variable templating, chained execution and extraction."""

__version__ = "0.1.0"
