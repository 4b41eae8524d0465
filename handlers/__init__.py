"""
handlers/ - Presentation Layer
================================
Telegram command handlers. Each handler parses the command arguments,
delegates to the services of the calling user's ledger and replies with
the formatted result. No business logic lives here.
"""
