"""Application wiring, configuration, logging and errors for Drobeo."""
