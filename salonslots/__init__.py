"""
salonslots - availability computation and booking conflict checks for salons.
"""

__version__ = "0.1.0"
