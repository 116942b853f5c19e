"""Core domain package for onair.

Core contains the reconciliation, scheduling, and forward-tracking logic
without any Telegram, Twitch, or storage-specific code.
"""
