"""
liveboard
Live event progression engine for the club portal.

Tracks which participants occupy which round of a live event, handles
elimination, winners, completion, tournament points and full resets.
"""

__version__ = "1.0.0"
