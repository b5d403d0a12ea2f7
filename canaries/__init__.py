"""Synthetic canaries for the Bank of Anthos frontend.

Each canary is a short, fail-fast sequence of named steps that either drives a
headless Chromium page (login and transaction flows) or issues raw HTTP
requests (API health and heartbeat). Steps are recorded by `CanaryRuntime`.
"""

__version__ = "0.1.0"
