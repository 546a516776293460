"""Shared helpers used across yup modules."""
