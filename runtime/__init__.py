"""Long-running runtime components."""
