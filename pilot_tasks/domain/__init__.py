"""Domain layer: pure models and functions, no I/O."""
