"""
Infrastructure adapters: record stores, object stores, identity providers, event logs.
"""
