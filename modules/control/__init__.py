"""Player feedback."""
