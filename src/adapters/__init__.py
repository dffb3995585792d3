"""Adapters binding the core to Telegram, the file system and HTTP collaborators."""
