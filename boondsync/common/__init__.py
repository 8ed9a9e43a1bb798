"""Shared configuration, logging, resilience and persistence helpers."""
