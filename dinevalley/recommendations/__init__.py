"""
Recommendation helpers.

Responsibilities:
- Cache provider search pages for a short TTL, keyed by query.
- Rank personalized picks from the user's favorites and recent views.
"""
