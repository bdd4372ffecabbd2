"""
GigPay Payment Orders

Creates Cashfree payment orders for subscription plans and marketplace
products, verifies their status, and grants what was paid for:
- config: gateway settings from the environment
- gateway: Cashfree PG Orders API client
- service: create / verify / await settlement
- handlers: status code mapping shared by the HTTP and event adapters
- entitlements: applies paid orders to Supabase
"""

__version__ = "1.0.0"
