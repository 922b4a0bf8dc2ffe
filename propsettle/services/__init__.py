"""
Service layer.

- core: shared infrastructure for outbound calls (circuit breakers)
- stats: per-sport stat provider adapters
- settlement: game resolution, completion checks, outcome evaluation,
  batch sweeps, parlay settlement and reconciliation
"""
