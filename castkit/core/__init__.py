"""Core Application Layer: Orchestrates use cases and application logic.

Connects the CLI with the Warpcast client and the user interface.
"""
