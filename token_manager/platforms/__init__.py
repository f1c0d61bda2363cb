"""Platform integrations that consume managed credentials."""
