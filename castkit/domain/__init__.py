"""Domain Layer: value objects, entities, events and interfaces (ports).

Contains no I/O. Infrastructure adapters implement the interfaces defined here.
"""
