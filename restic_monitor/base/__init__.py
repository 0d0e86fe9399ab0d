"""Shared building blocks: cancellation, errors, retry, logging, metrics, tasks."""
