"""Multi-provider LLM brand-mention monitor."""
