"""Service resource validators."""
