"""Core domain package for wallrelay.

Core contains the ledger, scheduling, forwarding and lifecycle logic without
any VK or Telegram specific code, keeping the business logic portable.
"""
