"""
Order pricing and order/payment lifecycle engine for a commerce admin
console.
"""

__version__ = "0.1.0"
