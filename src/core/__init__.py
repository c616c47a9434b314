"""
Shared plumbing for the booking services: response envelope, error kinds,
resilience envelope for remote calls, keyed locks and logging setup.
"""
