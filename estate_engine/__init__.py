"""
Property search cache and similar-properties recommendation engine.

Responsibilities:
- Serve repeated property searches from a fingerprinted in-memory cache.
- Report popularity, latency and hit-rate analytics for that cache.
- Rank similar properties by content, personalised by user interactions.
"""
