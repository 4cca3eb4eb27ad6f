"""Test helpers: in-memory repository and payload builders."""
