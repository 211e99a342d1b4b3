"""HTTP API over the node manager."""
