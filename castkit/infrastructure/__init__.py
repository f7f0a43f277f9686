"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (HTTP API, signing keys,
console, configuration files) by implementing the interfaces defined in the
domain layer.
"""
