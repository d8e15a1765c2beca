"""Builders translating between resource specs and container API payloads."""
