"""Real-time infrastructure — Redis pub/sub + WebSocket fan-out.

Events flow through two hops:
1. Producers → PropagationService → Redis PUBLISH (cluster-wide broadcast)
2. Redis SUBSCRIBE (every gateway process) → local ConnectionRegistry → WebSocket

No process knows where a user's sockets live. Each one receives every
envelope and delivers to whatever matching connections it holds.
"""
