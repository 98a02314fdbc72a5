"""
fieldslots - bookable time slots for field technicians.
"""

__version__ = "0.1.0"
