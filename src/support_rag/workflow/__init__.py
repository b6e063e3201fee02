"""Supervised workflow: state machine, retry/fallback layer and orchestrator."""
