"""RunSight Stage: device pairing and admission control backend."""
