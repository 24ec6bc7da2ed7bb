"""
HTTP surface.

The ASGI app lives in `rentals.api.app`; import it from there.
"""
