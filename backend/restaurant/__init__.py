"""
Restaurant bounded contexts: orders, kitchen, reservations, menu,
inventory and staff accounts.
"""
