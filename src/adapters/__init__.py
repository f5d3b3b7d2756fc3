"""Adapters that connect the core ports to Riot, SQLite, and Telegram."""
