"""
TravelOps back-office client: session handling and API access for the admin panel.
"""
__version__ = '1.0.0'
