"""Infrastructure layer module.

Configuration, database access, ORM models, repositories, transaction
retries and payment gateway adapters.
"""
