"""
                TableServe

Multi-tenant venue ordering platform: organizations build digital
menus, print QR codes for their tables and accept customer orders
through a public ordering flow, while staff work the orders from an
authenticated dashboard.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
