"""
zonehub web layer - REST API, WebSocket realtime channel and broadcast gateway.
"""
