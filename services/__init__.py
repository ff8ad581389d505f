"""Domain services used by the blueprints."""
