"""
messagedb-client: Typed client for the Message DB message store.

This package encodes Message DB's addressing scheme (streams, categories and
consumer-group partitioning), builds the parameters for its server functions,
decodes the rows they return and translates optimistic concurrency failures
into typed errors.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
