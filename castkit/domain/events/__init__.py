"""Domain Event definitions.

Diagnostic events emitted by the request-management layer (rate limiting,
token refresh, cache hits). Consumers subscribe through an event sink.
"""
