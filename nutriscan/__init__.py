"""
Nutriscan - barcode acquisition and nutrition lookup service.
"""

__version__ = "1.0.0"
