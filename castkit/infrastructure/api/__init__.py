"""Warpcast REST API adapter."""
