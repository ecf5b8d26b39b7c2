"""Building blocks shared by the session services."""
