"""aiohttp server, routes and middleware."""
