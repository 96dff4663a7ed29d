"""HTTP API blueprints for the gateway."""
