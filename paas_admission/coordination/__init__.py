"""Distributed name registry built on single-object cluster operations."""
