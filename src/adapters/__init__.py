"""Integration adapters for wallrelay.

Adapters translate between VK, Telegram and HTTP on one side and the core
ports and controller on the other.
"""
