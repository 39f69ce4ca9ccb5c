"""
Oncology dose calculation backend.
"""
__version__ = "1.0.0"
