"""OAuth2 authorization-code relay for browser-embedded editors."""
