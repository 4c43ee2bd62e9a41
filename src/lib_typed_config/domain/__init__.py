"""Domain layer: value model, addressing, feature flags, and the error taxonomy."""
