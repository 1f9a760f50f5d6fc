"""
                FoodHub Ordering Backend

A multi-tenant food-ordering API: customers browse restaurants and order,
restaurant owners manage menus and fulfil orders, and an admin approves
accounts, curates the catalog and reads reports.

Author: FoodHub Team
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "FoodHub Team"
