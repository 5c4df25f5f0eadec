"""Service layer: upstream clients, cache and the registration pipeline."""
