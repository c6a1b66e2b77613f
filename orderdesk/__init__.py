"""
                        OrderDesk

Multi-shop ordering backend: customers order over WhatsApp chat
commands or the web, shops track orders live through a dashboard.
"""

__version__ = "1.0.0"
