"""Admission request validation for PaaS resources."""
