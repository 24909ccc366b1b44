"""shuttleq: fair court rotation for club match play."""
