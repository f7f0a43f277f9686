"""Caching Service Implementation.

Provides the in-memory TTLCache implementing the CacheService interface,
with a size cap, lazy expiry and a periodic sweep.
Bounded Context: Cache Management
"""
