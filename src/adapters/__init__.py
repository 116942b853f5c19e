"""Integration adapters for onair.

Adapters implement the core ports on top of Telegram (Telethon), Twitch
(aiohttp), and a JSON snapshot file.
"""
