"""Configuration, logging, clock and HTTP client plumbing."""
