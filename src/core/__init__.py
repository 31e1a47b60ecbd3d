"""Core domain package for the spectrum relay.

Core contains the ingestion loop, cursor and telemetry models without any
browser, Telegram or storage-specific code, keeping the business logic
portable.
"""
