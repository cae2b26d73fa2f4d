"""crmgraph: cross-entity relationship aggregation over a CRM record store."""

__version__ = "0.1.0"
