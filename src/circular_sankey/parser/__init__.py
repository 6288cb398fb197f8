"""Graph model and record ingestion."""
