"""Authentication.

The gateway never issues credentials for real users — the core API does
that (login, refresh rotation). Here we only verify access tokens:
1. WebSocket handshakes → optional token → AuthUser attached to the connection
2. Producer HTTP API → Bearer token with the ADMIN role
"""
