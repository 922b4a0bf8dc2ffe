"""
API routes.

- validation: settlement batch trigger, status, accuracy stats, reconciliation
- parlays: parlay settlement trigger and status
"""
