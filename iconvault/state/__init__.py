"""Persistent state stores."""
