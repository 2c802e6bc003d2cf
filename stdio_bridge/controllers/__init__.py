"""
Bridge Controllers

External-facing surfaces of the bridge.
"""
