"""Admission webhooks enforcing name uniqueness and placement for PaaS resources."""
__version__ = "1.0.0"
