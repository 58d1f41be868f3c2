"""Root conftest: keeps the repository root importable so tests can use ``tests.helpers``."""
