"""Core domain: models, document store, sync engine and configuration."""
