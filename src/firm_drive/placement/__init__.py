"""Document placement into the firm's folder structure."""
