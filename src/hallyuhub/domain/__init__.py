"""Domain layer - entities, DTOs, exceptions and pure value-object logic."""
