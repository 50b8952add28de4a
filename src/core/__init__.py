"""Core domain package for mediarelay.

Core contains link recognition, media fan-out, publishing and the exchange
store without any Telegram or HTTP-specific code, keeping the relay logic
portable and testable with fakes.
"""
