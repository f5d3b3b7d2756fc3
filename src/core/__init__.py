"""Core domain package for riftwatch.

Core contains the polling, reconciliation, and stats logic without any Riot,
Telegram, or storage-specific code, keeping the business logic portable.
"""
