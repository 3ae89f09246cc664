"""HTTP surface of the line server."""
