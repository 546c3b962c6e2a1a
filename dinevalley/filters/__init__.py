"""
Search filter layer.

Responsibilities:
- Hold the user-selected search facets (cuisine, price, dietary, rating,
  open-now, distance) with clamped, alias-free values.
- Translate facets and free text into Places provider query parameters.
- Re-filter provider results on facets the provider cannot apply itself.
"""
