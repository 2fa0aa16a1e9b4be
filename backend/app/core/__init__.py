"""
Core package — cross-cutting concerns.

Modules:
    config        — environment variables & settings
    logging       — structured JSON / console logging
    errors        — exception hierarchy & handlers
    middleware    — request logging and correlation IDs
    http_clients  — upstream / relay HTTP client construction
    health        — health check aggregation
"""
