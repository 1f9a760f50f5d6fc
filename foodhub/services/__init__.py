"""
                        Services Module

Business logic behind the API routers. Each module works on an
AsyncSession handed in by the caller and raises the errors of
foodhub.core.exceptions.

Services:
    - accounts: registration, login, approval, account deletion
    - catalog: restaurants, menus, cascade deletes
    - cart: per-customer cart
    - orders: checkout and order status workflow
    - ratings: customer ratings and average-rating aggregation
    - messaging: messages to the admin and admin broadcasts
    - site_config: categories and promoted restaurants
    - reports: dashboard counts and analytics
    - ledger: lock-guarded Excel order ledger
"""
