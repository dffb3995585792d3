"""Core domain package for switchboard.

Core contains tokenizing, match trees, the rule registry and dispatch logic
without any Telegram or file-system code, keeping the business logic portable.
"""
