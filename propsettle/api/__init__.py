"""HTTP API: settlement triggers and read-only stats."""
