"""
                        Services Module

Business logic behind the API, each concern with a development and a
production implementation chosen by a cached factory.

Services:
    - store: Orders, catalog and counters (in-memory or SQL)
    - sequence: Atomic order-number allocation
    - ordering: Menu resolution, pricing, status rules, orchestration
    - notifications: Chat transports and the notification fan-out
    - realtime: Live order events (in-process or Redis pub/sub)
    - chat: WhatsApp command interpreter and handler
"""
