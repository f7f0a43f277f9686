"""Domain models: value objects, social entities and the error taxonomy."""
