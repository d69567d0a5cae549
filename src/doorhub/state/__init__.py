"""State/store layer.

Single source of truth for observed door state, and the event vocabulary
used to tell observers about it.
"""
