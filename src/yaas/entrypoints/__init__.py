"""Entry points: HTTP API and jobs."""
