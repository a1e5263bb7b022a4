"""Sync engine core: scheduling, syncing, reconciliation, health and statistics."""
