"""
Search paging and details loading.

Responsibilities:
- Drive a search session through first-page, load-more and exhausted
  states, discarding pages that resolve after a filter change.
- Keep only the latest details request for the restaurant being viewed.
- Merge fresh provider records with locally cached snapshots.
"""
