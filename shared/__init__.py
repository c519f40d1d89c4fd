"""Shared framework, storage and utilities for registry sync services."""
