"""JSON-over-websocket connections, server and client for hub peers."""