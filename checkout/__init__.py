"""
Checkout backend.

Creates Mercado Pago payment preferences, keeps orders in memory and
reconciles their status from asynchronous payment notifications.
"""

__version__ = "1.0.0"
