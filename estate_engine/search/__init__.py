"""
Search query cache.

Responsibilities:
- Canonicalise search filters into stable fingerprints.
- Serve repeated searches from a bounded, TTL-aware LRU cache.
- Track popularity and latency telemetry for the analytics snapshot.
"""
