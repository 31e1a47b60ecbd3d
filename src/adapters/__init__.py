"""Adapters binding the core ports to Playwright, SQLite, files and Telegram."""
