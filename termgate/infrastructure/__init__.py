"""Infrastructure layer - adapters for storage, configuration and execution."""
