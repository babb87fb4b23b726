"""HTTP API for a smart pool controller."""
