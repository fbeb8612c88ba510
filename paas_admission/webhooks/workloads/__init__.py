"""Workload resource validators (orgs, spaces, apps, packages, tasks)."""
