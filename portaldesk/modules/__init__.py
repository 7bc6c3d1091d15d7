"""
PortalDesk Modules
==================

Flask blueprint modules for the publishing console.
"""

__all__ = ['banners', 'columnists']
