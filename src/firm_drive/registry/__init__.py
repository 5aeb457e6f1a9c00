"""Company and application document records."""
