"""API Resilience Implementations.

Contains the sliding-window rate limiter that paces every outbound call.
Bounded Context: API Resilience
"""
