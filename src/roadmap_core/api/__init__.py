"""HTTP API for the roadmap engine."""
