"""
Backend package for the contractor marketplace.

Provides a FastAPI application over a record store that runs on either a
document database (MongoDB) or a relational one (SQLAlchemy), with JWT
sessions for admins and customers and a dashboard statistics aggregator.
"""
