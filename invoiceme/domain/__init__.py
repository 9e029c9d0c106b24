"""Invoice domain: value objects, the Invoice aggregate and its events.

This package contains logic that defines *what* the business rules are,
independent from *where* they are applied (services, repositories, etc.).
Nothing in here talks to the database or publishes anything.
"""
