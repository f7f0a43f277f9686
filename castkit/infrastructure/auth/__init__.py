"""Authentication: request signing and bearer-token lifecycle.

Bounded Context: API Authentication
"""
