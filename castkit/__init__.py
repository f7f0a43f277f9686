"""castkit: resilient asynchronous client for the Warpcast API.

Bundles a bounded TTL response cache, a shared-budget request rate limiter
and a single-flight signing token manager behind one HTTP client.
"""

__version__ = "0.3.0"
