"""Configuration layer — settings models, config discovery, and logging setup."""
