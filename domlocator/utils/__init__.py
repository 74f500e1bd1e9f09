"""Configuration, logging and timing helpers shared across domlocator."""
