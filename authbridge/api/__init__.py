"""HTTP surface of the bridge (Flask blueprints)."""
