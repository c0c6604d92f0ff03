"""Viewer-aware profile disclosure."""
