"""Calendar helpers for the plan catalog."""
