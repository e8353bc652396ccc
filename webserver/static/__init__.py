"""
Static file resolution with .gz variant negotiation.
"""

from webserver.static.resolver import RequestDecision, accepts_gzip, resolve

__all__ = ["RequestDecision", "accepts_gzip", "resolve"]
