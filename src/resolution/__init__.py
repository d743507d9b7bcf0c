"""Conflict resolution: version finder, reconciler, era guard, transactional attempts."""
