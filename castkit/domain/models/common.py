"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like user ids, cast hashes, cache keys
and pagination cursors, ensuring consistency and type safety.
"""

from typing import NewType

# === Social Graph Context ===

# Using NewType for semantic clarity, although they are plain ints/strs at runtime.
Fid = NewType("Fid", int)                  # Farcaster user id
CastHash = NewType("CastHash", str)        # 0x-prefixed cast identifier
ChannelId = NewType("ChannelId", str)      # e.g. 'dev'
Cursor = NewType("Cursor", str)            # Opaque pagination cursor, passed back verbatim

# === Request Management Context ===
CacheKey = NewType("CacheKey", str)            # Namespaced key, e.g. 'warpcast/profile/42'
OperationKey = NewType("OperationKey", str)    # Rate limiter tag, e.g. 'get_profile:42'

# === Authentication Context ===
BearerToken = NewType("BearerToken", str)
CustodyCredential = NewType("CustodyCredential", str)  # 'eip191:<base64 signature>'

# Milliseconds since the Unix epoch
EpochMillis = NewType("EpochMillis", int)
