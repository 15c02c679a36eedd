"""Engines for the admin console core."""
