"""
                Restaurant Floor Manager

Backend for a restaurant's floor: public order intake with server-side
repricing, menu, tables, reservations, staff, inventory and financial
reporting, with live change streams for the staff dashboard.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
