"""Services — async shell around the pure core (database + content generator IO)."""
