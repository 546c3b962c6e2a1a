"""
Per-user preference persistence.

Responsibilities:
- Define the key-value store interface the rest of the app writes to.
- Keep favorites (with snapshots), recently viewed places, visit history,
  saved filters and the theme choice.
- Sanitize stored values on the way back in.
"""
