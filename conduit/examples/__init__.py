"""Example applications built on Conduit."""
