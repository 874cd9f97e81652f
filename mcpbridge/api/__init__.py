"""HTTP API for mcpbridge."""
