"""Adapters binding the engine ports to concrete infrastructure."""
