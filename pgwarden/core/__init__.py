"""Orchestration core: run log, clock, stage gate, run state, orchestrator."""
