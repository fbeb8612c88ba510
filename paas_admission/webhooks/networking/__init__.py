"""Networking resource validators."""
