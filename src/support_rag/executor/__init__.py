"""Dependency-leveled sub-query execution."""
