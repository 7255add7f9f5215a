"""Account, verification-code and session-token services."""
