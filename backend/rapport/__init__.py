"""Relationship and access-control backend."""
