"""Settings loading and logging configuration."""
