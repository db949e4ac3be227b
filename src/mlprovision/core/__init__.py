"""Core building blocks: configuration, logging, command execution and detection."""
