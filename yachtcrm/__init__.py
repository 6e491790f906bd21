"""Multi-tenant CRM core for yacht brokers: clients, boat listings, reminders."""

__version__ = "0.1.0"
