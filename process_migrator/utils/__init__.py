"""Utility modules for the process migrator."""
