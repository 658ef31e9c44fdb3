"""HTTP API of the review server."""
