"""Input/output helpers: trial loading and summary table export."""
