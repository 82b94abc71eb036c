"""Endpoint modules for the box's ``/m`` HTTP API."""
