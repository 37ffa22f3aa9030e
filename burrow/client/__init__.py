"""Tunnel client entry point."""
