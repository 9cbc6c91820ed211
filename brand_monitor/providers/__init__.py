"""Provider adapters: one per polled LLM vendor, sharing ``BaseProviderAdapter``."""
