"""Adapters: format providers, writers, and watchers around the core."""
