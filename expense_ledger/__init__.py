"""
Expense Ledger - Source Package

The data-consistency layer behind the expense screens of a small
business-management front end. Expense accounts, the expenses booked
against them and the people an expense can be attributed to all live in a
hosted Postgres-over-REST service (Supabase); this package keeps the
client-side view of that data honest.

DESIGN PRINCIPLES:
1. Validate locally, before anything touches the network
2. Change local state only after the backend confirms a write
3. One visible notification per failed operation
4. Attribution data is optional and never blocks expense entry
5. Backend is swappable (Supabase in production, in-memory in tests)
"""

__version__ = "1.0.0"
__author__ = "Expense Ledger Team"
