"""Integration adapters: Telegram transport, game server, oracle, admin API."""
