"""Input validators."""
