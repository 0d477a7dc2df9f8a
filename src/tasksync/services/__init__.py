"""Use cases. Each service takes its ports in the constructor."""
