"""docledger Database — SQLAlchemy tables and session helpers for the SQL store."""
