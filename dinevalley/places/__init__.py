"""
Google Places provider.

Responsibilities:
- Run nearby searches for a ProviderQuery and map results to Restaurant.
- Fetch and shape place details (photos, reviews, hours, map image).
- Proxy photo bytes.
- Treat any status other than OK / ZERO_RESULTS as a PlacesError.
"""
