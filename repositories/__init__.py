"""
repositories/ - Data Access Layer
==================================
The ledger store and the repositories built on it. Each repository maps
one kind of ledger record (schedules, balances, transactions) to domain
objects; the users table is accessed with plain SQL.
"""
