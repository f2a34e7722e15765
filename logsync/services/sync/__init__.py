"""Realtime sync: wire messages, connection state machine, protocol handler."""
