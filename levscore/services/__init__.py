"""Import orchestration, scoring and run summaries."""
