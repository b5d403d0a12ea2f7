"""Canary flows. Each module exposes `run_canary(config)` and a no-argument `handler()`."""
