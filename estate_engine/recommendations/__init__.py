"""
Similar-properties recommendation engine.

Responsibilities:
- Score catalog candidates against a target property by content similarity.
- Re-weight the ranking with a user's recent, weighted interactions.
- Cache the final ranked list per (property, user) and invalidate it
  whenever that user records a new interaction.
"""
