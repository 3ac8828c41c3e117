"""
                Food Delivery Backend

Order and restaurant backend of a food delivery web application:
restaurant search, hosted checkout, payment reconciliation and invoices.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
