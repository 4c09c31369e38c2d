"""Review dashboard for products extracted from shopping videos."""

__all__ = [
    "cli",
    "client",
    "config",
    "context",
    "controller",
    "dashboard",
    "errors",
    "ledger",
    "models",
    "normalize",
    "projection",
    "schema",
    "server",
    "sessions",
]
