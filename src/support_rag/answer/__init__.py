"""Answer synthesis and response validation."""
