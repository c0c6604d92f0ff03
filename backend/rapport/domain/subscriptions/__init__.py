"""Subscription ledger and premium cascades."""
